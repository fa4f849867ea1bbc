from __future__ import annotations

import csv
from io import StringIO
from typing import Any, Iterable

from etiquetas.fechas import formatear_fecha

CAMPOS_FILTRO = ("codigo", "marca", "descripcion", "lote", "area")

CABECERAS_CSV = [
    "Código",
    "Marca",
    "Descripción",
    "Unidad",
    "Lote",
    "Fecha Expiración",
    "Área",
    "Presentación",
    "Empresa",
]


def _texto(item: dict[str, Any], campo: str) -> str:
    v = item.get(campo)
    return "" if v is None else str(v)


def filtrar_listado(items: Iterable[Any], filtro: str = "") -> list[Any]:
    """Case-insensitive substring match on codigo, marca, descripcion, lote or area."""
    items = list(items)
    buscado = (filtro or "").strip().lower()
    if not buscado:
        return items
    return [
        item
        for item in items
        if isinstance(item, dict) and any(buscado in _texto(item, c).lower() for c in CAMPOS_FILTRO)
    ]


def listado_csv(items: Iterable[Any]) -> str:
    """One line per remote record; every data cell quoted, dates as dd/mm/yyyy."""
    buf = StringIO()
    buf.write(",".join(CABECERAS_CSV) + "\n")
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    for item in items:
        if not isinstance(item, dict):
            continue
        writer.writerow(
            [
                _texto(item, "codigo"),
                _texto(item, "marca"),
                _texto(item, "descripcion"),
                _texto(item, "unidad"),
                _texto(item, "lote"),
                formatear_fecha(_texto(item, "fechaExpiracion")),
                _texto(item, "area"),
                _texto(item, "presentacion"),
                _texto(item, "empresa"),
            ]
        )
    return buf.getvalue()
