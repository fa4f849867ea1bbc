from __future__ import annotations

import logging
import re
from datetime import date, timedelta

logger = logging.getLogger(__name__)

PATRON_FECHA = re.compile(r"^\d{1,2}/\d{1,2}/\d{2,4}$", re.ASCII)
SOLO_DIGITOS = re.compile(r"\d+", re.ASCII)

# Serial dates as the remote system stores them: days since 1900-01-01 plus 2
# (the spreadsheet 1900 leap-year quirk). 2026-09-30 -> 46295.
EPOCA = date(1900, 1, 1)
AJUSTE_EPOCA = 2


def parece_fecha(valor: str) -> bool:
    s = str(valor or "")
    return "/" in s or bool(PATRON_FECHA.match(s))


def normalizar_fecha(valor: str) -> str:
    """Convert a D/D/Y date into the numeric day count expected by the API.

    Digits-only input is assumed to be converted already. Anything that does
    not look like D/D/Y is returned as-is.
    """
    fecha = str(valor or "").strip()
    if not fecha:
        return ""

    if SOLO_DIGITOS.fullmatch(fecha):
        return fecha

    if not PATRON_FECHA.match(fecha):
        return fecha

    partes = [int(p) for p in fecha.split("/")]
    # US order when the first part can be a month.
    if partes[0] <= 12:
        mes, dia, anio = partes
    else:
        dia, mes, anio = partes

    if anio < 100:
        anio = 2000 + anio if anio < 50 else 1900 + anio

    try:
        actual = date(anio, mes, dia)
    except ValueError as e:
        logger.warning("Fecha inválida %r: %s", fecha, e)
        return fecha

    return str((actual - EPOCA).days + AJUSTE_EPOCA)


def formatear_fecha(valor: str) -> str:
    """Day count or ISO date -> dd/mm/yyyy for display. Empty -> "N/A"."""
    fecha = str(valor or "").strip()
    if not fecha:
        return "N/A"

    try:
        if SOLO_DIGITOS.fullmatch(fecha):
            actual = EPOCA + timedelta(days=int(fecha) - AJUSTE_EPOCA)
        else:
            actual = date.fromisoformat(fecha[:10])
    except (ValueError, OverflowError):
        return fecha
    return actual.strftime("%d/%m/%Y")
