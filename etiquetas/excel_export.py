from __future__ import annotations

from io import BytesIO
from pathlib import Path

from openpyxl import Workbook

HEADERS = [
    "area",
    "codigo",
    "descripcion",
    "marca",
    "lote",
    "fechaExpiracion",
    "unidad",
    "presentacion",
    "empresa",
]

COLUMN_WIDTHS = [22, 12, 40, 15, 12, 16, 10, 36, 15]

EJEMPLOS = [
    ["COAGULACION", "6689E+09", "COAGUCHECK TP CONTROLS", "ROCHE", "77E+07", "2025-08-31", "CAJA",
     "CAJA CON 2 FRASCOS, 24 PRUEBAS C/U", "Bioscientia"],
    ["FUNCIONAMIENTO", "668E+09", "COAGUCHECK TP CONTROLS", "ROCHE", "81E+07", "2025-08-31", "CAJA",
     "Caja con 4 frascos con 2 niveles", "RBC"],
    ["TOMA DE MUESTRA/SANGRADO", "499-4V", "STA Cleaner solution", "STAGO", "271596", "2026-06-30", "PZ",
     "Botella de 2500mL", "Consumos"],
    ["INMUNOHEMATOLOGIA", "485-C1", "STA CaCl2 0.025M", "STAGO", "272336", "2026-11-30", "PZ",
     "Frasco 15mL", "Hemolife"],
    ["HEMATOLOGIA", "485-9v", "STA OWREN-KOLLER SOL. BUFFER PARA DET PT", "STAGO", "278992", "2026-09-30", "KIT",
     "Frasco 15mL", "Bioscientia"],
]

INSTRUCCIONES = [
    "Esta plantilla contiene ejemplos de productos para importar al sistema.",
    "Campos obligatorios: código y descripción.",
    "El sistema detectará automáticamente las columnas aunque tengan nombres diferentes.",
    "Empresas disponibles: Bioscientia, RBC, Consumos, Hemolife.",
    "Formato de fecha recomendado: YYYY-MM-DD (ej: 2025-12-31).",
]


def build_template() -> Workbook:
    """Import template: a 'Productos' sheet with sample rows plus 'Instrucciones'."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Productos"
    ws.append(HEADERS)
    for row in EJEMPLOS:
        ws.append(row)

    for c, width in enumerate(COLUMN_WIDTHS, start=1):
        ws.column_dimensions[ws.cell(row=1, column=c).column_letter].width = width

    ws_inst = wb.create_sheet(title="Instrucciones")
    ws_inst.append(["Instrucciones"])
    for line in INSTRUCCIONES:
        ws_inst.append([line])
    ws_inst.column_dimensions["A"].width = 90
    return wb


def template_bytes() -> bytes:
    buf = BytesIO()
    build_template().save(buf)
    return buf.getvalue()


def write_template(xlsx_path: Path) -> Path:
    p = Path(xlsx_path).expanduser().resolve()
    if p.suffix.lower() != ".xlsx":
        raise RuntimeError("El archivo debe ser .xlsx")
    p.parent.mkdir(parents=True, exist_ok=True)
    build_template().save(p)
    return p
