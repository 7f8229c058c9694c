"""Webhook bridge that writes Jira worklogs on behalf of OAuth-connected users."""

from __future__ import annotations

__version__ = "0.1.0"
