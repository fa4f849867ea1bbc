from __future__ import annotations

import logging
import re
import unicodedata
from dataclasses import dataclass, field
from datetime import date, datetime
from io import BytesIO
from pathlib import Path
from typing import Any, Iterable, Mapping

from openpyxl import load_workbook
from openpyxl.utils import get_column_letter

from etiquetas.campos import (
    ALIAS_AREA,
    ALIAS_CODIGO,
    ALIAS_DESCRIPCION,
    ALIAS_EMPRESA,
    ALIAS_FECHA,
    ALIAS_LOTE,
    ALIAS_MARCA,
    ALIAS_PRESENTACION,
    ALIAS_UNIDAD,
    marca_desde_descripcion,
    resolver_campo,
)
from etiquetas.errores import ExcelImportError
from etiquetas.fechas import normalizar_fecha, parece_fecha
from etiquetas.tipos_importacion import Registro

logger = logging.getLogger(__name__)

Fila = dict[str, str]

_LETRAS_COLUMNA = re.compile(r"^[A-Z]{1,3}$")

MARCA_GENERICA = "GENÉRICO"
UNIDAD_DEFAULT = "PZ"
EMPRESA_DEFAULT = "Bioscientia"


def _norm(x: Any) -> str:
    s = str(x or "").strip()
    s = " ".join(s.split())
    s = unicodedata.normalize("NFKD", s)
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    return s.casefold()


def _nombre_columna(valor: str) -> str:
    # "Fecha de Caducidad" -> "fecha_de_caducidad"
    s = re.sub(r"\s+", "_", str(valor).lower())
    s = unicodedata.normalize("NFD", s)
    return "".join(ch for ch in s if not unicodedata.combining(ch))


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        # m/d/yyyy: four-digit year so the normalizer never applies the century pivot.
        return f"{value.month}/{value.day}/{value.year}"
    if isinstance(value, float):
        if value.is_integer():
            return str(int(value))
        return str(value)
    return str(value)


@dataclass(frozen=True)
class OpcionesImportacion:
    # Fuzzy description match: first `fuzzy_tokens` words longer than
    # `fuzzy_min_len` characters, at least `fuzzy_min_matches` must overlap.
    fuzzy_tokens: int = 3
    fuzzy_min_len: int = 3
    fuzzy_min_matches: int = 2
    empresa_default: str = EMPRESA_DEFAULT
    marca_generica: str = MARCA_GENERICA
    unidad_default: str = UNIDAD_DEFAULT


# Fields carried across merged cells.
CAMPOS_ARRASTRE = ("codigo", "descripcion", "marca", "unidad", "empresa", "area", "presentacion")


@dataclass
class EstadoImportacion:
    """Acumulador del recorrido por filas.

    ``ultimos`` guarda el último valor leído de verdad en una fila para cada
    campo (celdas combinadas). ``descripcion_a_codigo`` se llena en la primera
    pasada y solo se consulta en la segunda.
    """

    ultimos: dict[str, str] = field(default_factory=lambda: {k: "" for k in CAMPOS_ARRASTRE})
    descripcion_a_codigo: dict[str, str] = field(default_factory=dict)

    def ultimo(self, campo: str) -> str:
        return self.ultimos.get(campo, "")

    def recordar(self, campo: str, valor: str) -> None:
        if valor:
            self.ultimos[campo] = valor


def codigo_valido(codigo: str) -> bool:
    return bool(codigo) and not parece_fecha(codigo)


def usa_encabezados_de_letra(filas: list[Mapping[str, Any]]) -> bool:
    if not filas or not filas[0]:
        return False
    return all(_LETRAS_COLUMNA.match(str(k)) for k in filas[0].keys())


def remapear_encabezados(filas: list[Mapping[str, Any]]) -> list[Fila]:
    """Treat the first row as the real header when keys are column letters."""
    if not usa_encabezados_de_letra(filas):
        return [{str(k): _cell_text(v) for k, v in f.items()} for f in filas]

    mapa: dict[str, str] = {}
    for letra, valor in filas[0].items():
        if isinstance(valor, str) and valor.strip():
            mapa[letra] = _nombre_columna(valor.strip())
    logger.debug("Mapa de columnas detectado: %s", mapa)

    out: list[Fila] = []
    for fila in filas[1:]:
        out.append({mapa.get(letra, letra): _cell_text(v) for letra, v in fila.items()})
    return out


def recolectar_asociaciones(filas: Iterable[Fila], estado: EstadoImportacion) -> None:
    """Primera pasada: descripción -> código para filas con ambos valores válidos."""
    for fila in filas:
        codigo = resolver_campo(fila, ALIAS_CODIGO)
        descripcion = resolver_campo(fila, ALIAS_DESCRIPCION)
        if codigo and descripcion and codigo_valido(codigo):
            estado.descripcion_a_codigo[descripcion.strip()] = codigo.strip()
    logger.debug("Asociaciones descripción -> código: %d", len(estado.descripcion_a_codigo))


def _palabras_clave(texto: str, opciones: OpcionesImportacion) -> list[str]:
    palabras = [w for w in _norm(texto).split(" ") if len(w) >= opciones.fuzzy_min_len]
    return palabras[: opciones.fuzzy_tokens]


def buscar_codigo_similar(
    descripcion: str, asociaciones: Mapping[str, str], opciones: OpcionesImportacion
) -> str:
    desc_words = _palabras_clave(descripcion, opciones)
    if not desc_words:
        return ""
    for clave, codigo in asociaciones.items():
        key_words = _palabras_clave(clave, opciones)
        coincidencias = sum(
            1 for kw in key_words if any(dw in kw or kw in dw for dw in desc_words)
        )
        if coincidencias >= opciones.fuzzy_min_matches:
            return codigo
    return ""


def procesar_fila(
    fila: Fila, indice: int, estado: EstadoImportacion, opciones: OpcionesImportacion
) -> Registro:
    """Segunda pasada para una fila; ``indice`` empieza en 1. Nunca falla."""
    codigo = resolver_campo(fila, ALIAS_CODIGO).strip()
    if codigo and not codigo_valido(codigo):
        logger.warning("El código %r de la fila %d parece una fecha; se ignora", codigo, indice)
        codigo = ""
    codigo_propio = codigo

    descripcion = resolver_campo(fila, ALIAS_DESCRIPCION).strip()
    descripcion_propia = descripcion
    sintetica = False
    if not descripcion:
        descripcion = estado.ultimo("descripcion")
    if not descripcion:
        descripcion = f"Producto sin descripción {indice}"
        sintetica = True

    if not codigo and not sintetica:
        codigo = estado.descripcion_a_codigo.get(descripcion, "")
        if not codigo:
            codigo = buscar_codigo_similar(descripcion, estado.descripcion_a_codigo, opciones)
            if codigo:
                logger.debug("Fila %d: código %s por descripción similar", indice, codigo)
    if not codigo:
        codigo = estado.ultimo("codigo")
    if not codigo:
        codigo = f"SIN-CODIGO-{indice}"

    propios = {
        "marca": resolver_campo(fila, ALIAS_MARCA).strip(),
        "unidad": resolver_campo(fila, ALIAS_UNIDAD).strip(),
        "empresa": resolver_campo(fila, ALIAS_EMPRESA).strip(),
        "area": resolver_campo(fila, ALIAS_AREA).strip(),
        "presentacion": resolver_campo(fila, ALIAS_PRESENTACION).strip(),
    }
    valores = {campo: (v or estado.ultimo(campo)) for campo, v in propios.items()}

    if not valores["empresa"]:
        valores["empresa"] = opciones.empresa_default
    if not valores["marca"]:
        valores["marca"] = marca_desde_descripcion(descripcion) or opciones.marca_generica
    if not valores["unidad"]:
        valores["unidad"] = opciones.unidad_default

    lote = resolver_campo(fila, ALIAS_LOTE).strip()
    fecha = normalizar_fecha(resolver_campo(fila, ALIAS_FECHA))

    # Only values read from this row feed the carry-forward state.
    estado.recordar("codigo", codigo_propio)
    estado.recordar("descripcion", descripcion_propia)
    for campo, v in propios.items():
        estado.recordar(campo, v)

    return Registro(
        codigo=codigo,
        marca=valores["marca"],
        descripcion=descripcion,
        unidad=valores["unidad"],
        lote=lote,
        fechaExpiracion=fecha,
        empresa=valores["empresa"],
        area=valores["area"],
        presentacion=valores["presentacion"],
    )


def importar_filas(
    filas: Iterable[Mapping[str, Any]], opciones: OpcionesImportacion | None = None
) -> list[Registro]:
    """Turn raw sheet rows into one Registro per non-blank row."""
    opciones = opciones or OpcionesImportacion()
    # Blank rows are dropped before header detection so a leading blank line
    # is never taken as the header.
    crudas = [dict(f) for f in filas if f and any(_cell_text(v).strip() for v in f.values())]
    datos = remapear_encabezados(crudas)

    estado = EstadoImportacion()
    recolectar_asociaciones(datos, estado)

    out = [procesar_fila(fila, i, estado, opciones) for i, fila in enumerate(datos, start=1)]
    logger.info("Importadas %d filas (%d asociaciones código-descripción)", len(out), len(estado.descripcion_a_codigo))
    return out


class ExcelImporter:
    def __init__(
        self,
        xlsx_path: Path | None = None,
        worksheet_name: str | None = None,
        *,
        data: bytes | None = None,
        opciones: OpcionesImportacion | None = None,
    ):
        if xlsx_path is None and data is None:
            raise ValueError("Se requiere xlsx_path o data")
        self.xlsx_path = Path(xlsx_path) if xlsx_path is not None else None
        self.worksheet_name = (worksheet_name or "").strip()
        self.data = data
        self.opciones = opciones or OpcionesImportacion()

    def _open(self):
        source: Any
        if self.data is not None:
            source = BytesIO(self.data)
        else:
            if not self.xlsx_path.exists():
                raise ExcelImportError(f"Excel file not found: {self.xlsx_path}")
            source = self.xlsx_path
        try:
            return load_workbook(filename=source, data_only=True, read_only=True)
        except Exception as e:
            raise ExcelImportError(f"Error al procesar el archivo: {e}") from e

    def _worksheet(self, wb):
        if self.worksheet_name:
            wanted = _norm(self.worksheet_name)
            name = next((n for n in wb.sheetnames if _norm(n) == wanted), None)
            if name is not None:
                return wb[name]
            logger.warning("Hoja %r no encontrada; se usa la primera", self.worksheet_name)
        if not wb.sheetnames:
            raise ExcelImportError("El archivo no contiene hojas")
        return wb[wb.sheetnames[0]]

    def read_rows(self) -> list[Fila]:
        """Rows keyed by column letter (A, B, ...), blank cells as ""."""
        wb = self._open()
        try:
            ws = self._worksheet(wb)
            out: list[Fila] = []
            for row_vals in ws.iter_rows(values_only=True):
                fila = {get_column_letter(i): _cell_text(v) for i, v in enumerate(row_vals, start=1)}
                if any(v.strip() for v in fila.values()):
                    out.append(fila)
            return out
        except ExcelImportError:
            raise
        except Exception as e:
            raise ExcelImportError(f"Error al leer la hoja: {e}") from e
        finally:
            wb.close()

    def read_registros(self) -> list[Registro]:
        return importar_filas(self.read_rows(), self.opciones)
