import enum


class ExperienceLevel(str, enum.Enum):
    beginner = "beginner"
    intermediate = "intermediate"
    advanced = "advanced"


class UserRole(str, enum.Enum):
    player = "player"
    admin = "admin"


class TeamType(str, enum.Enum):
    group_application = "group_application"
    wolf_pack = "wolf_pack"
    startup = "startup"


class TeamStatus(str, enum.Enum):
    forming = "forming"
    active = "active"
    completed = "completed"


class MemberRole(str, enum.Enum):
    leader = "leader"
    member = "member"
    pending = "pending"


class ApplicationType(str, enum.Enum):
    group_application = "group_application"
    wolf_pack = "wolf_pack"


class ApplicationStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    shortlisted = "shortlisted"


class TaskStatus(str, enum.Enum):
    assigned = "assigned"
    in_progress = "in_progress"
    completed = "completed"
    overdue = "overdue"  # only ever set explicitly


class TaskPriority(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"


class MessageType(str, enum.Enum):
    text = "text"
    file = "file"
    system = "system"


class NotificationType(str, enum.Enum):
    application_update = "application_update"
    team_formed = "team_formed"
    task_assigned = "task_assigned"
    message = "message"


class ProjectCategory(str, enum.Enum):
    startup = "startup"
    learning = "learning"
    freelance = "freelance"
    open_source = "open_source"


class ProjectStatus(str, enum.Enum):
    open = "open"
    in_progress = "in_progress"
    completed = "completed"
    paused = "paused"


class TimeCommitment(str, enum.Enum):
    part_time = "part_time"
    full_time = "full_time"
    flexible = "flexible"
