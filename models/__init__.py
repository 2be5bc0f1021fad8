# -------------------------
# Enums
# -------------------------
from .enums import (
    ParkStatus,
    TreeHealthStatus,
    ActivityStatus,
    RegistrationStatus,
    InstructorStatus,
    VolunteerStatus,
    MovementType,
    CampaignStatus,
    SponsorStatus,
    ContractStatus,
    EmployeeStatus,
    TimeOffType,
    TimeOffStatus,
    ExportFormat,
)

# -------------------------
# Parks
# -------------------------
from .park import ParkBase, ParkCreate, ParkUpdate, ParkRead, ParkImageRead

# -------------------------
# Trees
# -------------------------
from .tree import (
    TreeSpeciesCreate,
    TreeSpeciesUpdate,
    ParkAreaCreate,
    ParkAreaUpdate,
    TreeCreate,
    TreeUpdate,
    TreeMaintenanceCreate,
)

# -------------------------
# Activities
# -------------------------
from .activity import (
    ActivityCategoryCreate,
    ActivityCategoryUpdate,
    ActivityCreate,
    ActivityUpdate,
    RegistrationCreate,
    RegistrationStatusUpdate,
)

# -------------------------
# Instructors
# -------------------------
from .instructor import InstructorCreate, InstructorUpdate

# -------------------------
# Auth
# -------------------------
from .auth import LoginRequest, TokenResponse, ProfileUpdate

__all__ = [
    # enums
    "ParkStatus",
    "TreeHealthStatus",
    "ActivityStatus",
    "RegistrationStatus",
    "InstructorStatus",
    "VolunteerStatus",
    "MovementType",
    "CampaignStatus",
    "SponsorStatus",
    "ContractStatus",
    "EmployeeStatus",
    "TimeOffType",
    "TimeOffStatus",
    "ExportFormat",

    # parks
    "ParkBase",
    "ParkCreate",
    "ParkUpdate",
    "ParkRead",
    "ParkImageRead",

    # trees
    "TreeSpeciesCreate",
    "TreeSpeciesUpdate",
    "ParkAreaCreate",
    "ParkAreaUpdate",
    "TreeCreate",
    "TreeUpdate",
    "TreeMaintenanceCreate",

    # activities
    "ActivityCategoryCreate",
    "ActivityCategoryUpdate",
    "ActivityCreate",
    "ActivityUpdate",
    "RegistrationCreate",
    "RegistrationStatusUpdate",

    # instructors
    "InstructorCreate",
    "InstructorUpdate",

    # auth
    "LoginRequest",
    "TokenResponse",
    "ProfileUpdate",
]
