from app.integrations.oauth.flow import (
    OAUTH_CLIENTS,
    build_authorization_url,
    ensure_valid_token,
    exchange_code_for_token,
    get_oauth_client,
    is_token_expired,
)
from app.integrations.oauth.state import StatePayload, decode_state, encode_state
