# ============================================
# CENTRALIZED ROLE → PERMISSIONS MAP
# ============================================
#
# Seven system roles. Lower level = more authority
# (1 = super admin, 7 = external auditor).
#
# Permissions are granted per module with the actions
# read / write / admin. "admin" implies "write" implies "read".
# ============================================

ACTIONS = ["read", "write", "admin"]

# Module slug → display name
MODULES = {
    "config": "Configuración",
    "management": "Gestión",
    "operations": "Operaciones",
    "finance": "Finanzas",
    "marketing": "Marketing",
    "hr": "RH",
    "security": "Seguridad",
}

# Resource → module that guards it
MODULE_OF = {
    "parks": "management",
    "trees": "management",
    "activities": "management",
    "instructors": "management",
    "volunteers": "operations",
    "warehouse": "operations",
    "advertising": "marketing",
    "sponsorship": "marketing",
    "hr": "hr",
    "roles": "security",
    "users": "security",
    "exports": "config",
    "uploads": "management",
}

# Display name → module slug, so "Gestión:write" reads the same as "management:write"
MODULE_BY_NAME = {name: slug for slug, name in MODULES.items()}


ROLES = [
    {
        "slug": "super-admin",
        "name": "Super Administrador",
        "description": "Acceso total al sistema",
        "level": 1,
        "color": "#1e40af",
    },
    {
        "slug": "admin-general",
        "name": "Administrador General",
        "description": "Administrador general del sistema",
        "level": 2,
        "color": "#1e40af",
    },
    {
        "slug": "coordinador-parques",
        "name": "Coordinador de Parques",
        "description": "Coordinador de parques urbanos",
        "level": 3,
        "color": "#1e40af",
    },
    {
        "slug": "supervisor-operaciones",
        "name": "Supervisor de Operaciones",
        "description": "Supervisor de operaciones de campo",
        "level": 4,
        "color": "#1e40af",
    },
    {
        "slug": "tecnico-especialista",
        "name": "Técnico Especialista",
        "description": "Técnico especialista en áreas",
        "level": 5,
        "color": "#1e40af",
    },
    {
        "slug": "operador-campo",
        "name": "Operador de Campo",
        "description": "Operador de campo",
        "level": 6,
        "color": "#1e40af",
    },
    {
        "slug": "consultor-auditor",
        "name": "Consultor Auditor",
        "description": "Consultor auditor externo",
        "level": 7,
        "color": "#1e40af",
    },
]

ROLES_BY_SLUG = {role["slug"]: role for role in ROLES}

DEFAULT_ROLE = "consultor-auditor"


ROLE_PERMISSIONS = {

    # =====================================================
    # SUPER ADMIN: full access to everything
    # =====================================================
    "super-admin": {"all": True},

    # =====================================================
    # GENERAL ADMIN
    # =====================================================
    "admin-general": {
        "config": ["read", "write"],
        "management": ["read", "write", "admin"],
        "operations": ["read", "write", "admin"],
        "finance": ["read", "write", "admin"],
        "marketing": ["read", "write", "admin"],
        "hr": ["read", "write", "admin"],
        "security": ["read", "write"],
    },

    # =====================================================
    # PARKS COORDINATOR
    # =====================================================
    "coordinador-parques": {
        "config": ["read"],
        "management": ["read", "write", "admin"],
        "operations": ["read", "write", "admin"],
        "finance": ["read"],
        "marketing": ["read", "write"],
        "hr": ["read"],
        "security": ["read"],
    },

    # =====================================================
    # OPERATIONS SUPERVISOR
    # =====================================================
    "supervisor-operaciones": {
        "config": ["read"],
        "management": ["read", "write"],
        "operations": ["read", "write"],
        "finance": ["read"],
        "marketing": ["read", "write", "admin"],
        "hr": ["read"],
        "security": ["read"],
    },

    # =====================================================
    # SPECIALIST TECHNICIAN
    # =====================================================
    "tecnico-especialista": {
        "config": ["read"],
        "management": ["read"],
        "operations": ["read"],
        "finance": ["read", "write", "admin"],
        "marketing": ["read"],
        "hr": ["read", "write"],
        "security": ["read"],
    },

    # =====================================================
    # FIELD OPERATOR
    # =====================================================
    "operador-campo": {
        "config": [],
        "management": ["read"],
        "operations": ["read", "write"],
        "finance": [],
        "marketing": ["read"],
        "hr": [],
        "security": [],
    },

    # =====================================================
    # AUDITOR: read-only everywhere
    # =====================================================
    "consultor-auditor": {
        "config": ["read"],
        "management": ["read"],
        "operations": ["read"],
        "finance": ["read"],
        "marketing": ["read"],
        "hr": ["read"],
        "security": ["read"],
    },
}
