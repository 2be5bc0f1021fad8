# services/export_engine.py

"""
Tabular exports (CSV, XLSX, PDF, JSON) for the admin list screens.

Each exportable entity is registered once with its table, columns and
allowed filters. export() fetches the rows from Supabase, keeps the
selected columns and hands them to a formatter.
"""

import csv
import io
import json
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill
from openpyxl.utils import get_column_letter
from reportlab.lib import colors
from reportlab.lib.pagesizes import letter, landscape
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from core.config import settings
from core.errors import ExportError
from core.logging_config import logger
from core.permission_helpers import has_permission
from core.utils import parse_timestamp, to_float


FIELD_TYPES = ("string", "number", "currency", "date", "boolean", "array")
PREVIEW_ROWS = 10


# ============================================================
# Registry
# ============================================================
@dataclass
class ExportField:
    key: str
    label: str
    type: str = "string"


@dataclass
class ExportConfig:
    entity: str
    display_name: str
    table: str
    resource: str
    fields: List[ExportField]
    filterable: List[str] = field(default_factory=list)
    supported_formats: List[str] = field(default_factory=lambda: ["csv", "xlsx", "pdf", "json"])
    order_by: str = "id"
    exclude_deleted: bool = False

    def to_dict(self) -> dict:
        return {
            "entity": self.entity,
            "display_name": self.display_name,
            "fields": [f.__dict__ for f in self.fields],
            "filterable": self.filterable,
            "supported_formats": self.supported_formats,
        }


EXPORT_REGISTRY: Dict[str, ExportConfig] = {
    "parks": ExportConfig(
        entity="parks",
        display_name="Parques",
        table="parks",
        resource="parks",
        exclude_deleted=True,
        filterable=["municipality_text", "park_type", "status"],
        fields=[
            ExportField("id", "ID", "number"),
            ExportField("code_prefix", "Prefijo"),
            ExportField("name", "Nombre"),
            ExportField("park_type", "Tipo"),
            ExportField("municipality_text", "Municipio"),
            ExportField("address", "Dirección"),
            ExportField("area", "Superficie (m²)", "number"),
            ExportField("green_area", "Área verde (m²)", "number"),
            ExportField("foundation_year", "Año de fundación"),
            ExportField("status", "Estado"),
            ExportField("created_at", "Fecha de registro", "date"),
        ],
    ),
    "activities": ExportConfig(
        entity="activities",
        display_name="Actividades",
        table="activities",
        resource="activities",
        filterable=["park_id", "category_id", "status"],
        order_by="start_date",
        fields=[
            ExportField("id", "ID", "number"),
            ExportField("title", "Título"),
            ExportField("park_id", "Parque", "number"),
            ExportField("start_date", "Fecha de inicio", "date"),
            ExportField("end_date", "Fecha de fin", "date"),
            ExportField("location", "Ubicación"),
            ExportField("capacity", "Capacidad", "number"),
            ExportField("is_free", "Gratuita", "boolean"),
            ExportField("price", "Precio", "currency"),
            ExportField("target_market", "Mercado meta", "array"),
            ExportField("status", "Estado"),
        ],
    ),
    "volunteers": ExportConfig(
        entity="volunteers",
        display_name="Voluntarios",
        table="volunteers",
        resource="volunteers",
        filterable=["status", "preferred_park_id"],
        fields=[
            ExportField("id", "ID", "number"),
            ExportField("full_name", "Nombre"),
            ExportField("email", "Correo"),
            ExportField("phone", "Teléfono"),
            ExportField("age", "Edad", "number"),
            ExportField("preferred_park_id", "Parque preferido", "number"),
            ExportField("interest_areas", "Áreas de interés", "array"),
            ExportField("available_days", "Días disponibles", "array"),
            ExportField("legal_consent", "Consentimiento", "boolean"),
            ExportField("status", "Estado"),
            ExportField("created_at", "Fecha de registro", "date"),
        ],
    ),
    "instructors": ExportConfig(
        entity="instructors",
        display_name="Instructores",
        table="instructors",
        resource="instructors",
        filterable=["status", "preferred_park_id"],
        order_by="full_name",
        fields=[
            ExportField("id", "ID", "number"),
            ExportField("full_name", "Nombre"),
            ExportField("email", "Correo"),
            ExportField("phone", "Teléfono"),
            ExportField("status", "Estado"),
            ExportField("specialties", "Especialidades", "array"),
            ExportField("experience_years", "Años de experiencia", "number"),
            ExportField("hourly_rate", "Tarifa por hora", "currency"),
            ExportField("preferred_park_id", "Parque preferido", "number"),
            ExportField("rating", "Calificación", "number"),
            ExportField("created_at", "Fecha de registro", "date"),
        ],
    ),
    "trees": ExportConfig(
        entity="trees",
        display_name="Inventario de árboles",
        table="trees",
        resource="trees",
        filterable=["park_id", "species_id", "area_id", "health_status"],
        order_by="tree_code",
        fields=[
            ExportField("tree_code", "Código"),
            ExportField("species_id", "Especie", "number"),
            ExportField("park_id", "Parque", "number"),
            ExportField("area_id", "Área", "number"),
            ExportField("health_status", "Salud"),
            ExportField("height", "Altura (m)", "number"),
            ExportField("trunk_diameter", "Diámetro (cm)", "number"),
            ExportField("planting_date", "Fecha de plantación", "date"),
            ExportField("last_maintenance_date", "Último mantenimiento", "date"),
            ExportField("is_protected", "Protegido", "boolean"),
        ],
    ),
    "employees": ExportConfig(
        entity="employees",
        display_name="Empleados",
        table="employees",
        resource="hr",
        filterable=["department", "status", "park_id"],
        order_by="employee_code",
        fields=[
            ExportField("employee_code", "Número"),
            ExportField("full_name", "Nombre"),
            ExportField("email", "Correo"),
            ExportField("position", "Puesto"),
            ExportField("department", "Departamento"),
            ExportField("hire_date", "Fecha de ingreso", "date"),
            ExportField("salary", "Salario", "currency"),
            ExportField("status", "Estado"),
        ],
    ),
    "consumables": ExportConfig(
        entity="consumables",
        display_name="Consumibles",
        table="consumables",
        resource="warehouse",
        filterable=["category_id", "is_active", "perishable"],
        order_by="code",
        fields=[
            ExportField("code", "Código"),
            ExportField("name", "Nombre"),
            ExportField("category_id", "Categoría", "number"),
            ExportField("unit_of_measure", "Unidad"),
            ExportField("minimum_stock", "Stock mínimo", "number"),
            ExportField("unit_cost", "Costo unitario", "currency"),
            ExportField("perishable", "Perecedero", "boolean"),
            ExportField("hazardous", "Peligroso", "boolean"),
            ExportField("is_active", "Activo", "boolean"),
        ],
    ),
}


def get_export_config(entity: str) -> ExportConfig:
    config = EXPORT_REGISTRY.get(entity)
    if not config:
        raise ExportError(f"Entity '{entity}' not found", "ENTITY_NOT_FOUND")
    return config


# ============================================================
# Value formatting
# ============================================================
def _as_date(value) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return parse_timestamp(value).date()
    except (TypeError, ValueError):
        return None


def format_number(value) -> str:
    text = f"{to_float(value):,.2f}"
    return text.rstrip("0").rstrip(".") if "." in text else text


def format_value(value, field_type: str) -> str:
    """Render one cell as text, the way the CSV and PDF outputs show it."""
    if value is None or value == "":
        return ""

    if field_type == "date":
        parsed = _as_date(value)
        return parsed.strftime("%d/%m/%Y") if parsed else str(value)

    if field_type == "currency":
        return f"${to_float(value):,.2f}"

    if field_type == "number":
        return format_number(value)

    if field_type == "boolean":
        return "Sí" if value else "No"

    if field_type == "array":
        return "; ".join(str(v) for v in value) if isinstance(value, (list, tuple)) else str(value)

    return str(value)


def _excel_value(value, field_type: str):
    """XLSX keeps numbers and dates native so the sheet can be sorted and summed."""
    if value is None or value == "":
        return None
    if field_type in ("number", "currency"):
        return to_float(value)
    if field_type == "date":
        return _as_date(value)
    return format_value(value, field_type)


# ============================================================
# Result
# ============================================================
@dataclass
class ExportResult:
    filename: str
    content: bytes
    mime_type: str
    record_count: int
    metadata: dict

    @property
    def size(self) -> int:
        return len(self.content)


# ============================================================
# Formatters
# ============================================================
class ExportEngine:

    MIME_TYPES = {
        "csv": "text/csv; charset=utf-8",
        "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "pdf": "application/pdf",
        "json": "application/json",
    }

    def __init__(self, client):
        self.client = client

    # ---------------------------------------------------------
    # Pipeline
    # ---------------------------------------------------------
    def export(self, entity: str, options, user=None) -> ExportResult:
        config = get_export_config(entity)
        export_format = str(options.format)

        if export_format not in config.supported_formats:
            raise ExportError(
                f"Format '{export_format}' is not supported for '{entity}'",
                "FORMAT_NOT_SUPPORTED",
            )

        if user is not None and not has_permission(user, f"{config.resource}:read"):
            raise ExportError(f"Not allowed to export '{entity}'", "PERMISSION_DENIED")

        fields = self.select_fields(config, options.fields)
        rows = self.fetch_rows(config, options.filters, options.limit, options.offset)
        rows = [{f.key: row.get(f.key) for f in fields} for row in rows]

        show_branding = options.template != "minimal"
        header = show_branding and options.include_header
        footer = show_branding and options.include_footer

        if export_format == "csv":
            content = self.to_csv(config, fields, rows, header, footer)
        elif export_format == "xlsx":
            content = self.to_xlsx(config, fields, rows, header)
        elif export_format == "pdf":
            content = self.to_pdf(config, fields, rows)
        else:
            content = self.to_json(config, rows)

        generated_at = datetime.now()
        logger.info(f"[exports] {entity} as {export_format}: {len(rows)} rows")

        return ExportResult(
            filename=f"{entity}_{generated_at:%Y%m%d_%H%M%S}.{export_format}",
            content=content,
            mime_type=self.MIME_TYPES[export_format],
            record_count=len(rows),
            metadata={
                "generated_at": generated_at.isoformat(),
                "generated_by": getattr(user, "id", None) or "system",
                "entity": entity,
                "format": export_format,
            },
        )

    def preview(self, entity: str, options) -> dict:
        config = get_export_config(entity)
        fields = self.select_fields(config, options.fields)
        rows = self.fetch_rows(config, options.filters, PREVIEW_ROWS, 0)
        return {
            "columns": [f.__dict__ for f in fields],
            "rows": [{f.key: format_value(row.get(f.key), f.type) for f in fields} for row in rows],
        }

    @staticmethod
    def select_fields(config: ExportConfig, requested: Optional[List[str]]) -> List[ExportField]:
        if not requested:
            return list(config.fields)

        by_key = {f.key: f for f in config.fields}
        unknown = [key for key in requested if key not in by_key]
        if unknown:
            raise ExportError(
                f"Unknown fields for '{config.entity}': {', '.join(unknown)}",
                "INVALID_REQUEST",
                details=unknown,
            )
        return [by_key[key] for key in requested]

    def fetch_rows(self, config: ExportConfig, filters: dict, limit: Optional[int], offset: int) -> list:
        unknown = [key for key in (filters or {}) if key not in config.filterable]
        if unknown:
            raise ExportError(
                f"Unsupported filters for '{config.entity}': {', '.join(unknown)}",
                "INVALID_REQUEST",
                details=unknown,
            )

        try:
            query = self.client.table(config.table).select("*")
            if config.exclude_deleted:
                query = query.eq("is_deleted", False)
            for key, value in (filters or {}).items():
                if value is not None and value != "":
                    query = query.eq(key, value)
            query = query.order(config.order_by)
            if limit:
                query = query.range(offset, offset + limit - 1)
            return query.execute().data or []

        except Exception as e:
            logger.error(f"[exports] Could not read {config.table}: {e}")
            raise ExportError(f"Could not read data for {config.display_name}", "DATA_ERROR", details=str(e))

    # ---------------------------------------------------------
    # Branding
    # ---------------------------------------------------------
    @staticmethod
    def header_rows(config: ExportConfig) -> List[List[str]]:
        rows = [
            ["Organización", settings.ORGANIZATION_NAME],
            ["Reporte", config.display_name],
            ["Fecha de Generación", datetime.now().strftime("%d/%m/%Y %H:%M")],
        ]
        if settings.ORGANIZATION_DEPARTMENT:
            rows.append(["Departamento", settings.ORGANIZATION_DEPARTMENT])
        return rows

    @staticmethod
    def footer_rows(record_count: int) -> List[List[str]]:
        rows = [["Total de Registros", str(record_count)]]
        if settings.ORGANIZATION_WEBSITE:
            rows.append(["Sitio Web", settings.ORGANIZATION_WEBSITE])
        return rows

    # ---------------------------------------------------------
    # CSV (UTF-8 with BOM so Excel picks up the accents)
    # ---------------------------------------------------------
    def to_csv(self, config, fields, rows, header: bool, footer: bool) -> bytes:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")

        if header:
            writer.writerows(self.header_rows(config))
            writer.writerow([])

        writer.writerow([f.label for f in fields])
        for row in rows:
            writer.writerow([format_value(row.get(f.key), f.type) for f in fields])

        if footer:
            writer.writerow([])
            writer.writerows(self.footer_rows(len(rows)))

        return ("\ufeff" + buffer.getvalue()).encode("utf-8")

    # ---------------------------------------------------------
    # XLSX
    # ---------------------------------------------------------
    def to_xlsx(self, config, fields, rows, header: bool) -> bytes:
        wb = Workbook()
        ws = wb.active
        ws.title = config.display_name[:31]

        if header:
            for label, value in self.header_rows(config):
                ws.append([label, value])
                ws.cell(row=ws.max_row, column=1).font = Font(bold=True)
            ws.append([])

        ws.append([f.label for f in fields])
        header_row = ws.max_row
        for cell in ws[header_row]:
            cell.font = Font(bold=True, color="FFFFFF")
            cell.fill = PatternFill("solid", fgColor="00A587")

        for row in rows:
            ws.append([_excel_value(row.get(f.key), f.type) for f in fields])
            for index, f in enumerate(fields, start=1):
                cell = ws.cell(row=ws.max_row, column=index)
                if f.type == "date":
                    cell.number_format = "DD/MM/YYYY"
                elif f.type == "currency":
                    cell.number_format = '"$"#,##0.00'

        for index, f in enumerate(fields, start=1):
            widest = max(
                [len(f.label)] + [len(format_value(row.get(f.key), f.type)) for row in rows]
            )
            ws.column_dimensions[get_column_letter(index)].width = min(widest + 2, 50)

        ws.freeze_panes = ws.cell(row=header_row + 1, column=1)

        buffer = io.BytesIO()
        wb.save(buffer)
        return buffer.getvalue()

    # ---------------------------------------------------------
    # PDF
    # ---------------------------------------------------------
    def to_pdf(self, config, fields, rows) -> bytes:
        buffer = io.BytesIO()
        pagesize = landscape(letter) if len(fields) > 6 else letter
        doc = SimpleDocTemplate(buffer, pagesize=pagesize, title=config.display_name)
        styles = getSampleStyleSheet()
        cell_style = styles["BodyText"]
        cell_style.fontSize = 7
        cell_style.leading = 9

        story = [
            Paragraph(f"{settings.ORGANIZATION_NAME}: {config.display_name}", styles["Heading1"]),
            Paragraph(f"Fecha de Generación: {datetime.now():%d/%m/%Y %H:%M}", styles["Normal"]),
            Spacer(1, 0.2 * inch),
        ]

        table_data = [[f.label for f in fields]]
        for row in rows:
            table_data.append([Paragraph(format_value(row.get(f.key), f.type), cell_style) for f in fields])

        table = Table(table_data, repeatRows=1)
        table.setStyle(TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, 0), 8),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
        ]))
        story.append(table)
        story.append(Spacer(1, 0.2 * inch))
        story.append(Paragraph(f"Total de Registros: {len(rows)}", styles["Normal"]))

        doc.build(story)
        return buffer.getvalue()

    # ---------------------------------------------------------
    # JSON (raw values)
    # ---------------------------------------------------------
    @staticmethod
    def to_json(config, rows) -> bytes:
        payload = {
            "entity": config.entity,
            "display_name": config.display_name,
            "generated_at": datetime.now().isoformat(),
            "count": len(rows),
            "data": rows,
        }
        return json.dumps(payload, ensure_ascii=False, default=str).encode("utf-8")
