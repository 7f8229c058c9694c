"""Jira Cloud worklog access: plain API caller and the retrying orchestrator."""

from __future__ import annotations

from .retrying import RetryingWorklogClient  # noqa: F401
from .worklogs import ApiResult, WorklogApiCaller, describe_jira_error  # noqa: F401

__all__ = ["ApiResult", "RetryingWorklogClient", "WorklogApiCaller", "describe_jira_error"]
