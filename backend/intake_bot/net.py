import logging
import os

import httpx

logger = logging.getLogger(__name__)

_AUTO_TRUST_ENV_DECISION: bool | None = None


def env_truthy(name: str) -> bool:
    v = (os.getenv(name) or "").strip().lower()
    return v in {"1", "true", "yes", "y", "on"}


def auto_decide_trust_env_for_telegram() -> bool:
    global _AUTO_TRUST_ENV_DECISION
    if _AUTO_TRUST_ENV_DECISION is not None:
        return _AUTO_TRUST_ENV_DECISION

    try:
        with httpx.Client(trust_env=False, timeout=5.0, follow_redirects=True) as client:
            client.get("https://api.telegram.org")
        _AUTO_TRUST_ENV_DECISION = False
    except httpx.HTTPError as e:
        logger.info("Direct connection to api.telegram.org failed (%s); using proxy settings from env.", e)
        _AUTO_TRUST_ENV_DECISION = True

    return _AUTO_TRUST_ENV_DECISION


def telegram_httpx_kwargs() -> dict:
    """Build httpx client kwargs for Telegram API calls.

    - If TELEGRAM_PROXY_URL is set, it is used explicitly (socks5/http).
    - Else TELEGRAM_TRUST_ENV (when present, even if false) decides whether env proxies apply.
    - Else probe a direct connection once and only trust env proxies if it fails.
    """
    explicit_proxy_url = (os.getenv("TELEGRAM_PROXY_URL") or "").strip()
    if explicit_proxy_url:
        return {"trust_env": False, "proxy": explicit_proxy_url}

    if os.getenv("TELEGRAM_TRUST_ENV") is not None:
        return {"trust_env": env_truthy("TELEGRAM_TRUST_ENV")}

    return {"trust_env": auto_decide_trust_env_for_telegram()}
