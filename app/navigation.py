"""Roles and the navigation tree each role is given.

Every signed-in session gets exactly one of three trees. Trees are fixed:
tabs, and the screens reachable inside each tab.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class Role(str, Enum):
    EMPLOYEE = "employee"
    MANAGER = "manager"
    ADMIN = "admin"

    @classmethod
    def resolve(cls, value) -> "Role":
        """Role stored on a profile -> Role. Case-insensitive; absent or unknown is EMPLOYEE."""
        if not value:
            return cls.EMPLOYEE
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.EMPLOYEE

    @property
    def is_staff(self) -> bool:
        """Managers and admins triage issues."""
        return self in (Role.MANAGER, Role.ADMIN)


@dataclass(frozen=True)
class Tab:
    name: str
    screens: Tuple[str, ...]

    def to_dict(self):
        return {"name": self.name, "screens": list(self.screens)}


@dataclass(frozen=True)
class NavigationTree:
    role: Role
    tabs: Tuple[Tab, ...]

    @property
    def screens(self):
        """Every screen reachable in the tree, first occurrence order."""
        seen = []
        for tab in self.tabs:
            for screen in tab.screens:
                if screen not in seen:
                    seen.append(screen)
        return seen

    def tab(self, name) -> Optional[Tab]:
        return next((t for t in self.tabs if t.name == name), None)

    def to_dict(self):
        return {
            "role": self.role.value,
            "tabs": [t.to_dict() for t in self.tabs],
        }


_PROFILE_TAB = Tab("Profile", ("ProfileMain", "Settings"))

EMPLOYEE_TREE = NavigationTree(
    role=Role.EMPLOYEE,
    tabs=(
        Tab("Home", (
            "Dashboard",
            "CreateIssue",
            "IssueList",
            "IssueDetails",
            "Notifications",
            "Settings",
        )),
        Tab("MyIssues", ("IssueList", "IssueDetails")),
        _PROFILE_TAB,
    ),
)

MANAGER_TREE = NavigationTree(
    role=Role.MANAGER,
    tabs=(
        Tab("Manager", (
            "ManagerDashboard",
            "IssueList",
            "IssueDetails",
            "Analytics",
            "Notifications",
            "Settings",
        )),
        Tab("AllIssues", ("IssueList", "IssueDetails")),
        _PROFILE_TAB,
    ),
)

# Admins reuse the manager issue views for global access.
ADMIN_TREE = NavigationTree(
    role=Role.ADMIN,
    tabs=(
        Tab("Admin", (
            "AdminDashboard",
            "UserManagement",
            "Analytics",
            "Notifications",
            "Settings",
            "IssueList",
            "IssueDetails",
        )),
        Tab("GlobalIssues", ("IssueList",)),
        _PROFILE_TAB,
    ),
)


def navigation_for(role: Role) -> NavigationTree:
    """Select the navigation tree for a role."""
    if role is Role.ADMIN:
        return ADMIN_TREE
    if role is Role.MANAGER:
        return MANAGER_TREE
    if role is Role.EMPLOYEE:
        return EMPLOYEE_TREE
    raise ValueError(f"No navigation tree for role {role!r}")
