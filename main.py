#!/usr/bin/env python3
"""
Start the Tarot API: create tables, run the admin bootstrap, then serve
"""

import logging

from tarotapi import app, db, user_service
from tarotapi.config import SETTINGS

logger = logging.getLogger(__name__)


def prepare_database():
    """Create missing tables and promote the configured admin"""
    with app.app_context():
        db.create_all()
        logger.info("[DB]: Tables ready")

        admin_username = SETTINGS.get("ADMIN_USERNAME")
        if admin_username:
            user_service.bootstrap_admin(admin_username)


def main():
    prepare_database()
    port = SETTINGS.get("service", {}).get("port", 3000)
    logger.info(f"[SERVICE]: Listening on port {port}")
    app.run(host="0.0.0.0", port=port)


if __name__ == "__main__":
    main()
