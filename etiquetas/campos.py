"""Búsqueda de valores por alias de columna.

Las hojas que llegan de los laboratorios usan encabezados muy distintos
("CÓDIGO", "Cod.", "No. Lote", "F caducidad"...). ``resolver_campo`` busca el
valor de un campo lógico en una fila probando, en orden:

1. coincidencia exacta (sin mayúsculas ni espacios en los extremos),
2. el alias contenido en el encabezado, o el encabezado como abreviatura del alias,
3. cualquier palabra del alias contenida en el encabezado,
4. para la marca, la primera palabra de la descripción.

Gana la primera coincidencia con valor no vacío.
"""

from __future__ import annotations

from typing import Any, Mapping, Sequence

ALIAS_CODIGO = ["codigo", "code", "sku", "id", "clave", "cód", "cod", "código", "CODIGO", "CÓDIGO"]
ALIAS_DESCRIPCION = [
    "descripcion",
    "description",
    "desc",
    "nombre",
    "name",
    "producto",
    "product",
    "descripción",
    "DESCRIPCION",
    "DESCRIPCIÓN",
]
ALIAS_MARCA = ["marca", "brand", "fabricante", "manufacturer", "MARCA"]
ALIAS_UNIDAD = ["unidad", "unit", "medida", "measure", "um", "UNIDAD"]
ALIAS_LOTE = ["lote", "lot", "batch", "no. lote", "numero de lote", "LOTE"]
ALIAS_FECHA = [
    "fechaExpiracion",
    "expiracion",
    "expiry",
    "caducidad",
    "vencimiento",
    "fecha exp",
    "exp date",
    "fecha caducidad",
    "fecha vencimiento",
    "f",
    "f caducidad",
    "CADUCIDAD",
    "F",
]
ALIAS_EMPRESA = ["empresa", "company", "proveedor", "supplier"]
ALIAS_AREA = ["area", "área", "sector", "departamento", "depto", "seccion", "sección", "a", "a area", "AREA", "ÁREA"]
ALIAS_PRESENTACION = [
    "presentacion",
    "presentación",
    "formato",
    "envase",
    "empaque",
    "package",
    "presentation",
    "h",
    "h presentacion",
    "PRESENTACION",
    "PRESENTACIÓN",
]

# Used by the brand fallback; narrower than ALIAS_DESCRIPCION on purpose
# ("producto" columns often hold codes).
ALIAS_DESCRIPCION_MARCA = ["descripcion", "description", "desc", "nombre", "name"]

MIN_ABREVIATURA = 3


def _texto(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _sin_puntuacion(key: str) -> str:
    return key.strip().rstrip(".:-_ ").strip()


def marca_desde_descripcion(descripcion: str) -> str:
    """First word of a description when it looks like a brand, else ""."""
    palabras = (descripcion or "").split(" ")
    primera = palabras[0] if palabras else ""
    if not primera:
        return ""
    if primera == primera.upper() or len(primera) < 6:
        return primera
    return ""


def resolver_campo(row: Mapping[str, Any] | None, aliases: Sequence[str]) -> str:
    if not row:
        return ""

    # Later duplicates (case-insensitive) win, same as a plain dict rebuild.
    normalizada: dict[str, str] = {}
    for key, value in row.items():
        normalizada[str(key).lower().strip()] = _texto(value)

    claves = [a.lower().strip() for a in aliases]

    for alias in claves:
        if normalizada.get(alias, "") != "":
            return normalizada[alias]

    for alias in claves:
        for key, value in normalizada.items():
            if value == "":
                continue
            if alias and alias in key:
                return value
            abreviatura = _sin_puntuacion(key)
            if len(abreviatura) >= MIN_ABREVIATURA and alias.startswith(abreviatura):
                return value

    for key, value in normalizada.items():
        if value == "":
            continue
        for alias in claves:
            if any(word in key for word in alias.split()):
                return value

    if any("marca" in alias for alias in claves):
        descripcion = resolver_campo(row, ALIAS_DESCRIPCION_MARCA)
        if descripcion:
            return marca_desde_descripcion(descripcion)

    return ""
