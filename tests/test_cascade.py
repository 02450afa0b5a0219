from decimal import Decimal

from farewatch.models import Offer
from farewatch.processing.cascade import CascadeStage, cheapest, filter_by_hour, reduce, reduce_with_stage


class TestFilterByHour:
    """Test suite for the departure-hour filter."""

    def test_threshold_is_inclusive(self, make_offer):
        offers = [make_offer(1, hour=18), make_offer(2, hour=19), make_offer(3, hour=23)]
        assert filter_by_hour(offers, 19) == offers[1:]

    def test_offers_without_departure_never_match(self):
        assert filter_by_hour([Offer(price=Decimal("1"), airline="G3")], 0) == []


class TestCascade:
    """Test suite for staged relaxation of a direction's offers."""

    def test_empty_raw_set(self):
        assert reduce_with_stage([], 19) == (CascadeStage.EMPTY, [])

    def test_nonstop_preferred(self, make_offer):
        nonstop = make_offer(500, hour=20, stops=0)
        connection = make_offer(200, hour=21, stops=1)
        stage, pool = reduce_with_stage([connection, nonstop], 19)
        assert stage is CascadeStage.STRICT
        assert pool == [nonstop]

    def test_connections_used_when_no_nonstop(self, make_offer):
        offers = [make_offer(300, hour=20, stops=1), make_offer(250, hour=8, stops=2)]
        stage, pool = reduce_with_stage(offers, 19)
        assert stage is CascadeStage.STRICT
        assert pool == offers[:1]

    def test_relaxed_by_two_hours(self, make_offer):
        offers = [make_offer(300, hour=17), make_offer(250, hour=16), make_offer(200, hour=10)]
        stage, pool = reduce_with_stage(offers, 19)
        assert stage is CascadeStage.RELAXED
        assert pool == offers[:1]

    def test_relaxation_stays_within_nonstop_pool(self, make_offer):
        """A connecting flight after the threshold does not beat the nonstop pool."""
        nonstop = make_offer(300, hour=17, stops=0)
        connection = make_offer(100, hour=20, stops=1)
        stage, pool = reduce_with_stage([nonstop, connection], 19)
        assert stage is CascadeStage.RELAXED
        assert pool == [nonstop]

    def test_last_resort_takes_ten_cheapest_of_raw(self, make_offer):
        prices = [910, 150, 720, 330, 480, 260, 540, 870, 120, 690, 410, 300, 999, 205, 610]
        offers = [make_offer(p, hour=8, stops=1) for p in prices]
        stage, pool = reduce_with_stage(offers, 19)
        assert stage is CascadeStage.LAST_RESORT
        assert [int(o.price) for o in pool] == sorted(prices)[:10]

    def test_last_resort_draws_on_connections_too(self, make_offer):
        nonstop = make_offer(500, hour=9, stops=0)
        connection = make_offer(100, hour=8, stops=1)
        stage, pool = reduce_with_stage([nonstop, connection], 19)
        assert stage is CascadeStage.LAST_RESORT
        assert pool == [connection, nonstop]

    def test_last_resort_ties_keep_input_order(self, make_offer):
        first = make_offer(100, airline="G3")
        second = make_offer(100, airline="AD")
        assert reduce([first, second], 19) == [first, second]

    def test_result_is_subset_of_raw(self, make_offer):
        offers = [make_offer(100 + i, hour=h, stops=i % 2) for i, h in enumerate([5, 17, 18, 21, 22])]
        for min_hour in range(0, 24):
            assert all(o in offers for o in reduce(offers, min_hour))

    def test_cheapest_limit(self, make_offer):
        offers = [make_offer(p) for p in (5, 3, 4)]
        assert [int(o.price) for o in cheapest(offers, limit=2)] == [3, 4]
