"""Request bodies accepted by the website API.

Fields are plain strings. Enum membership and minimum lengths are checked by
:class:`~server_report.service.ReportService`.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class ReportCreate(BaseModel):
    title: str = ""
    description: str = ""
    category: Optional[str] = None
    priority: Optional[str] = None
    source: Optional[str] = None


class ReportUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    priority: Optional[str] = None
    status: Optional[str] = None


class StatusUpdate(BaseModel):
    status: Optional[str] = None


__all__ = ["ReportCreate", "ReportUpdate", "StatusUpdate"]
