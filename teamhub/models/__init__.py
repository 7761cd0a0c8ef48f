"""Import every model so ``Base.metadata`` knows about all tables."""

from teamhub.models.application import Application
from teamhub.models.message import Message
from teamhub.models.notification import Notification
from teamhub.models.profile import Profile
from teamhub.models.project import Project
from teamhub.models.stored_file import StoredFile
from teamhub.models.task import Task
from teamhub.models.team import Team
from teamhub.models.team_member import TeamMember
from teamhub.models.user import User

__all__ = [
    "Application",
    "Message",
    "Notification",
    "Profile",
    "Project",
    "StoredFile",
    "Task",
    "Team",
    "TeamMember",
    "User",
]
