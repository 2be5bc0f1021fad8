from enum import Enum


class BaseStrEnum(str, Enum):
    """
    Base enum that serializes cleanly to a string
    and provides a .list() method for UI dropdowns.
    """

    def __str__(self):
        return str(self.value)

    @classmethod
    def list(cls):
        return [item.value for item in cls]


# -----------------------------------------------------
# PARK STATUS
# -----------------------------------------------------
class ParkStatus(BaseStrEnum):
    en_funcionamiento = "en_funcionamiento"
    operando_parcialmente = "operando_parcialmente"
    en_mantenimiento = "en_mantenimiento"
    cerrado_temporalmente = "cerrado_temporalmente"
    cerrado_indefinidamente = "cerrado_indefinidamente"
    reapertura_proxima = "reapertura_proxima"
    en_proyecto_construccion = "en_proyecto_construccion"
    uso_restringido = "uso_restringido"


# -----------------------------------------------------
# TREE HEALTH
# -----------------------------------------------------
class TreeHealthStatus(BaseStrEnum):
    bueno = "Bueno"
    regular = "Regular"
    malo = "Malo"
    critico = "Crítico"
    muerto = "Muerto"


# -----------------------------------------------------
# ACTIVITIES
# -----------------------------------------------------
class ActivityStatus(BaseStrEnum):
    por_costear = "por_costear"
    programada = "programada"
    en_curso = "en_curso"
    finalizada = "finalizada"
    cancelada = "cancelada"


class RegistrationStatus(BaseStrEnum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"


class InstructorStatus(BaseStrEnum):
    pending = "pending"
    active = "active"
    inactive = "inactive"
    rejected = "rejected"


# -----------------------------------------------------
# VOLUNTEERS
# -----------------------------------------------------
class VolunteerStatus(BaseStrEnum):
    active = "active"
    inactive = "inactive"
    pending = "pending"
    suspended = "suspended"


# -----------------------------------------------------
# WAREHOUSE MOVEMENTS
# -----------------------------------------------------
class MovementType(BaseStrEnum):
    """
    Incoming types (entrada_*, ajuste_positivo, conteo_fisico) add to
    stock; every other type subtracts.
    """

    entrada_compra = "entrada_compra"
    entrada_donacion = "entrada_donacion"
    entrada_transferencia = "entrada_transferencia"
    entrada_devolucion = "entrada_devolucion"
    salida_consumo = "salida_consumo"
    salida_transferencia = "salida_transferencia"
    salida_merma = "salida_merma"
    salida_robo = "salida_robo"
    ajuste_positivo = "ajuste_positivo"
    ajuste_negativo = "ajuste_negativo"
    conteo_fisico = "conteo_fisico"


# -----------------------------------------------------
# ADVERTISING
# -----------------------------------------------------
class CampaignStatus(BaseStrEnum):
    active = "active"
    paused = "paused"
    completed = "completed"
    cancelled = "cancelled"


class AdMediaType(BaseStrEnum):
    image = "image"
    video = "video"
    html = "html"


class AdType(BaseStrEnum):
    banner = "banner"
    video = "video"
    native = "native"
    institutional = "institutional"
    commercial = "commercial"
    promotional = "promotional"


class AdPosition(BaseStrEnum):
    header = "header"
    sidebar = "sidebar"
    footer = "footer"
    content = "content"
    modal = "modal"


# -----------------------------------------------------
# SPONSORSHIP
# -----------------------------------------------------
class SponsorStatus(BaseStrEnum):
    potencial = "potencial"
    negociacion = "negociacion"
    activo = "activo"
    inactivo = "inactivo"


class ContractStatus(BaseStrEnum):
    draft = "draft"
    active = "active"
    expired = "expired"
    terminated = "terminated"


# -----------------------------------------------------
# HR
# -----------------------------------------------------
class EmployeeStatus(BaseStrEnum):
    active = "active"
    inactive = "inactive"
    on_leave = "on_leave"
    terminated = "terminated"


class TimeOffType(BaseStrEnum):
    vacation = "vacation"
    sick = "sick"
    personal = "personal"
    maternity = "maternity"
    paternity = "paternity"
    unpaid = "unpaid"


class TimeOffStatus(BaseStrEnum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    cancelled = "cancelled"


# -----------------------------------------------------
# EXPORTS
# -----------------------------------------------------
class ExportFormat(BaseStrEnum):
    csv = "csv"
    xlsx = "xlsx"
    pdf = "pdf"
    json = "json"
