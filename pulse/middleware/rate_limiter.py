"""
Rate limiting configuration.

The Limiter instance is created in pulse/__init__.py with no default limits;
this module applies limits per blueprint.

Usage:
    from pulse.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

WRITE_LIMIT = "120/minute"


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Login:            LOGIN_RATE_LIMIT (default 10 per minute)
        - Other endpoints:  120/minute

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    login_limit = app.config.get("LOGIN_RATE_LIMIT", "10 per minute")
    bp = app.blueprints.get("auth")
    if bp:
        limiter.limit(login_limit)(bp)

    for bp_name in ("projects", "tasks", "schedule", "members", "audit", "settings"):
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT)(bp)

    app.logger.info("Rate limiter configured: login=%s, api=%s", login_limit, WRITE_LIMIT)
