"""JSON serialization of the run report consumed by the front-end."""
import json
import logging
import os
import tempfile
from decimal import Decimal
from pathlib import Path

from .models import Combo, Report, WeekRecord


def _money(value: Decimal) -> float:
    return float(value)


def combo_to_dict(combo: Combo) -> dict:
    return {
        'airline': combo.carrier_label,
        'airlineCode': combo.carrier_code,
        'outboundPrice': _money(combo.outbound_price),
        'returnPrice': _money(combo.return_price),
        'totalPrice': _money(combo.total_price),
        'outboundDeparture': combo.outbound_departure,
        'returnDeparture': combo.return_departure,
        'outboundStops': combo.outbound_stops,
        'returnStops': combo.return_stops,
        'mixed': combo.is_mixed,
    }


def week_to_dict(week: WeekRecord) -> dict:
    return {
        'outboundDate': week.outbound_date.isoformat(),
        'returnDate': week.return_date.isoformat(),
        'updatedAt': week.updated_at.isoformat(),
        'combos': [combo_to_dict(c) for c in week.combos],
    }


def report_to_dict(report: Report) -> dict:
    return {
        'generatedAt': report.generated_at.isoformat(),
        'apiSource': report.api_source,
        'syntheticPrices': report.synthetic_prices,
        'config': dict(report.config),
        'weeks': [week_to_dict(w) for w in report.weeks],
    }


def write_report(report: Report, path: Path) -> Path:
    """Replace the artifact at path; a reader never sees a half-written file."""
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = json.dumps(report_to_dict(report), indent=2, ensure_ascii=False)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f'.{path.name}.', suffix='.tmp')
    try:
        with os.fdopen(fd, 'wt', encoding='utf-8') as f:
            f.write(payload)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    logging.info("Report written to %s (%d weeks, %d combos)", path, len(report.weeks), report.total_combos)
    return path
