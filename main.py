from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from etiquetas.errores import ConfigError, ExcelImportError, StoreError, SyncError
from etiquetas.excel_export import write_template
from etiquetas.excel_import import OpcionesImportacion
from etiquetas.listado import listado_csv
from etiquetas.services import InventarioService
from etiquetas.settings import Settings
from etiquetas.sincronizacion import SincronizadorApi
from etiquetas.store import LocalStore

logger = logging.getLogger("etiquetas")


def build_service(settings: Settings, *, sync: bool = True) -> InventarioService:
    store = LocalStore(settings.DATABASE_URL)
    sincronizador = None
    if sync:
        sincronizador = SincronizadorApi(settings.endpoints(), timeout=settings.SYNC_TIMEOUT_SECONDS)
    opciones = OpcionesImportacion(
        fuzzy_tokens=settings.FUZZY_TOKENS,
        fuzzy_min_matches=settings.FUZZY_MIN_MATCHES,
        empresa_default=settings.DEFAULT_EMPRESA,
    )
    return InventarioService(store, sincronizador, opciones=opciones, worksheet_name=settings.EXCEL_WORKSHEET_NAME)


def _cmd_importar(service: InventarioService, args) -> int:
    registros = service.importar_excel(Path(args.xlsx))
    if args.dry_run:
        print(json.dumps([r.to_payload() for r in registros], ensure_ascii=False, indent=2))
        return 0
    res = service.guardar_registros(registros)
    print("importados", len(registros), "productos", res.guardados, "lotes", res.lotes)
    if res.advertencia:
        print("ADVERTENCIA:", res.advertencia)
    return 0


def _cmd_listar(service: InventarioService, args) -> int:
    productos = service.listar()
    print(json.dumps([p.to_dict() for p in productos], ensure_ascii=False, indent=2))
    return 0


def _cmd_eliminar(service: InventarioService, args) -> int:
    if not service.eliminar(args.codigo):
        print("No encontrado:", args.codigo)
        return 1
    print("Eliminado:", args.codigo)
    return 0


def _cmd_listado(service: InventarioService, args) -> int:
    items = service.listado_remoto(args.filtro)
    if args.csv:
        destino = Path(args.csv)
        destino.parent.mkdir(parents=True, exist_ok=True)
        destino.write_text(listado_csv(items), encoding="utf-8")
        print("OK:", destino, len(items), "productos")
        return 0
    print(json.dumps(items, ensure_ascii=False, indent=2))
    return 0


def _cmd_serve(service: InventarioService, args, settings: Settings) -> int:
    from etiquetas.web_server import create_app

    app = create_app(service, settings)
    app.run(host=args.host, port=args.port, debug=args.debug)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Etiquetas de inventario: importación Excel, caché local y API")
    parser.add_argument("--no-sync", action="store_true", help="No sincronizar con la API remota")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_imp = sub.add_parser("importar", help="Importar un Excel a la base local")
    p_imp.add_argument("xlsx")
    p_imp.add_argument("--dry-run", action="store_true", help="Solo mostrar los registros detectados")

    sub.add_parser("listar", help="Listar productos guardados localmente")

    p_del = sub.add_parser("eliminar", help="Eliminar un producto (y sus lotes)")
    p_del.add_argument("codigo")

    p_tpl = sub.add_parser("plantilla", help="Escribir la plantilla de importación")
    p_tpl.add_argument("destino", nargs="?", default="plantilla_productos.xlsx")

    p_lst = sub.add_parser("listado", help="Obtener el listado remoto de productos")
    p_lst.add_argument("--filtro", default="", help="Texto a buscar en código, marca, descripción, lote o área")
    p_lst.add_argument("--csv", metavar="DESTINO", help="Exportar a CSV en lugar de imprimir JSON")

    p_srv = sub.add_parser("serve", help="Servidor HTTP local")
    p_srv.add_argument("--host", default="127.0.0.1")
    p_srv.add_argument("--port", type=int, default=8000)
    p_srv.add_argument("--debug", action="store_true")

    args = parser.parse_args(argv)

    settings = Settings()
    logging.basicConfig(
        level=getattr(logging, str(settings.LOG_LEVEL).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if args.cmd == "plantilla":
        print("OK:", write_template(Path(args.destino)))
        return 0

    settings.ensure_instance()
    service = build_service(settings, sync=not args.no_sync)

    try:
        if args.cmd == "importar":
            return _cmd_importar(service, args)
        if args.cmd == "listar":
            return _cmd_listar(service, args)
        if args.cmd == "eliminar":
            return _cmd_eliminar(service, args)
        if args.cmd == "listado":
            return _cmd_listado(service, args)
        if args.cmd == "serve":
            return _cmd_serve(service, args, settings)
    except (ConfigError, ExcelImportError, StoreError, SyncError) as e:
        logger.error("%s", e)
        print(f"Error: {e}", file=sys.stderr)
        return 2

    parser.error(f"Comando desconocido: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
