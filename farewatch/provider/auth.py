"""Client-credentials authentication against the Amadeus API.

The primary (production) environment is tried first and the secondary (test)
environment is used as a fallback; the secondary one serves synthetic prices.
Tokens are never cached between runs.
"""
import logging
from dataclasses import dataclass

import dacite
import requests

from ..config import API_HOSTS, PRIMARY, SECONDARY, Settings

TOKEN_PATH = '/v1/security/oauth2/token'
AUTH_TIMEOUT_SECONDS = 30


@dataclass(frozen=True, slots=True)
class AccessToken:
    access_token: str
    token_type: str = 'Bearer'
    expires_in: int | None = None


class AuthenticationFailure(RuntimeError):
    """Every attempted environment rejected the credentials or was unreachable."""

    def __init__(self, causes: dict[str, str]):
        self.causes = dict(causes)
        details = '; '.join(f'{env}: {reason}' for env, reason in self.causes.items())
        super().__init__(f'Authentication failed ({details}). Check AMADEUS_KEY/AMADEUS_SECRET.')


class EnvironmentAuthError(RuntimeError):
    """Single environment refused or could not be reached."""


def request_token(session: requests.Session, host: str, client_id: str, client_secret: str) -> AccessToken:
    try:
        response = session.post(
            host + TOKEN_PATH,
            data={
                'grant_type': 'client_credentials',
                'client_id': client_id,
                'client_secret': client_secret,
            },
            timeout=AUTH_TIMEOUT_SECONDS,
        )
    except requests.RequestException as e:
        raise EnvironmentAuthError(f'{host} unreachable: {e}') from e
    if not response.ok:
        raise EnvironmentAuthError(f'{host} answered HTTP {response.status_code}: {response.text[:200]}')
    try:
        return dacite.from_dict(data_class=AccessToken, data=response.json())
    except (ValueError, dacite.DaciteError) as e:
        raise EnvironmentAuthError(f'{host} returned an unusable token payload: {e}') from e


def authenticate(settings: Settings, session: requests.Session) -> tuple[str, str]:
    """Return (bearer token, environment name actually used)."""
    if settings.environment == SECONDARY:
        candidates = [SECONDARY]
        logging.info('Using secondary API (forced via AMADEUS_ENV)')
    else:
        candidates = [PRIMARY, SECONDARY]

    causes: dict[str, str] = {}
    for env in candidates:
        try:
            token = request_token(session, API_HOSTS[env], settings.amadeus_key, settings.amadeus_secret)
        except EnvironmentAuthError as e:
            logging.warning('%s auth failed: %s', env.capitalize(), e)
            causes[env] = str(e)
            continue
        if env == SECONDARY:
            logging.info('Authenticated against secondary API (prices will be synthetic)')
        else:
            logging.info('Authenticated against primary API')
        return token.access_token, env
    raise AuthenticationFailure(causes)
