from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, replace
from pathlib import Path
from typing import Any, Iterable

from etiquetas.errores import ConfigError, SyncError
from etiquetas.excel_import import ExcelImporter, OpcionesImportacion
from etiquetas.fechas import normalizar_fecha
from etiquetas.listado import filtrar_listado
from etiquetas.sincronizacion import SincronizadorApi
from etiquetas.store import LocalStore
from etiquetas.tipos_importacion import Producto, Registro, group_products_by_code, validar_registro

logger = logging.getLogger(__name__)


def _registro_manual(registro: Registro) -> Registro:
    validar_registro(registro)
    return replace(registro, fechaExpiracion=normalizar_fecha(registro.fechaExpiracion))


@dataclass(frozen=True)
class ResultadoGuardado:
    ok: bool
    guardados: int = 0
    lotes: int = 0
    sincronizado: bool = False
    advertencia: str | None = None
    timeout: bool = False

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class InventarioService:
    """Guardado local (autoritativo) seguido de sincronización remota (best-effort)."""

    def __init__(
        self,
        store: LocalStore,
        sincronizador: SincronizadorApi | None = None,
        *,
        opciones: OpcionesImportacion | None = None,
        worksheet_name: str = "",
    ):
        self.store = store
        self.sincronizador = sincronizador
        self.opciones = opciones or OpcionesImportacion()
        self.worksheet_name = worksheet_name

    def _sincronizar(self, productos: list[Producto], guardados: int, lotes: int) -> ResultadoGuardado:
        if self.sincronizador is None:
            return ResultadoGuardado(ok=True, guardados=guardados, lotes=lotes)

        try:
            self.sincronizador.push(productos)
        except SyncError as e:
            logger.warning(
                "Guardado localmente pero falló la sincronización (%s, %d registros): %s",
                e.endpoint or "-",
                e.registros,
                e,
            )
            return ResultadoGuardado(
                ok=True,
                guardados=guardados,
                lotes=lotes,
                sincronizado=False,
                advertencia=f"Guardado localmente; no se pudo sincronizar con la API: {e}",
                timeout=e.timeout,
            )
        return ResultadoGuardado(ok=True, guardados=guardados, lotes=lotes, sincronizado=True)

    def guardar_productos(self, productos: Iterable[Producto]) -> ResultadoGuardado:
        productos = list(productos)
        if self.sincronizador is not None:
            self.sincronizador.check_write_config()

        lotes = 0
        for p in productos:
            lotes += self.store.upsert_product(p)
        logger.info("Guardados %d productos (%d lotes) en la base local", len(productos), lotes)

        return self._sincronizar(productos, len(productos), lotes)

    def guardar_producto(self, producto: Producto) -> ResultadoGuardado:
        return self.guardar_productos([producto])

    def guardar_registros(self, registros: Iterable[Registro], *, validar: bool = False) -> ResultadoGuardado:
        """``validar`` marks manual entry: required fields checked, expiry date normalized."""
        registros = list(registros)
        if validar:
            registros = [_registro_manual(r) for r in registros]
        return self.guardar_productos(group_products_by_code(registros))

    def importar_excel(self, xlsx_path: Path | None = None, *, data: bytes | None = None) -> list[Registro]:
        importer = ExcelImporter(xlsx_path, self.worksheet_name, data=data, opciones=self.opciones)
        return importer.read_registros()

    def listar(self) -> list[Producto]:
        return self.store.get_all()

    def obtener(self, codigo: str) -> Producto | None:
        return self.store.get_by_code(codigo)

    def eliminar(self, codigo: str) -> bool:
        return self.store.delete(codigo)

    def listado_remoto(self, filtro: str = "") -> list[Any]:
        if self.sincronizador is None:
            raise ConfigError("Sincronización con la API deshabilitada")
        return filtrar_listado(self.sincronizador.fetch_list(), filtro)
