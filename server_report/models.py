"""Core data models for ServerReport."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Optional


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"


class ReportPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ReportStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class ReportSource(str, Enum):
    WEBSITE = "website"
    DISCORD = "discord"
    TELEGRAM = "telegram"


class Platform(str, Enum):
    """Chat platforms that can hold an integration."""

    DISCORD = "discord"
    TELEGRAM = "telegram"


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass
class User:
    id: int
    username: str
    email: str
    role: UserRole = UserRole.USER
    status: str = "active"
    created_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def to_dict(self) -> Dict[str, object]:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "role": self.role.value,
            "status": self.status,
            "created_at": _iso(self.created_at),
        }


@dataclass
class Integration:
    """Weak link from one chat-platform account to an internal user."""

    platform: Platform
    external_user_id: str
    external_username: Optional[str]
    user_id: Optional[int] = None
    created_at: Optional[datetime] = None

    @property
    def is_linked(self) -> bool:
        return self.user_id is not None


@dataclass
class Report:
    id: int
    user_id: int
    title: str
    description: str
    category: Optional[str]
    priority: ReportPriority
    status: ReportStatus
    source: ReportSource
    created_at: datetime
    updated_at: datetime
    # Only populated by the admin listing, which joins the owner.
    username: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            "id": self.id,
            "user_id": self.user_id,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "priority": self.priority.value,
            "status": self.status.value,
            "source": self.source.value,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if self.username is not None:
            data["username"] = self.username
        return data


__all__ = [
    "Integration",
    "Platform",
    "Report",
    "ReportPriority",
    "ReportSource",
    "ReportStatus",
    "User",
    "UserRole",
]
