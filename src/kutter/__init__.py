"""Kutter — real-time group chat backend.

Library API::

    from kutter import Config, create_api

    app = create_api(Config(jwt_secret="change-me"))
"""

from __future__ import annotations

from kutter.api.app import create_api
from kutter.config import Config

__all__ = ["Config", "create_api"]
