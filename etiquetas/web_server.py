from __future__ import annotations

from datetime import datetime
from io import BytesIO

from flask import Flask, Response, jsonify, request, send_file

from etiquetas.errores import ConfigError, ExcelImportError, StoreError, SyncError, ValidationError
from etiquetas.excel_export import template_bytes
from etiquetas.listado import listado_csv
from etiquetas.services import InventarioService
from etiquetas.settings import Settings
from etiquetas.tipos_importacion import Registro

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def create_app(service: InventarioService, settings: Settings) -> Flask:
    app = Flask(__name__, static_folder=None)

    def _ok(payload):
        return jsonify(payload)

    def _error(message: str, status: int):
        return jsonify({"ok": False, "error": message}), status

    @app.get("/health")
    def health() -> Response:
        return jsonify({"ok": True, "app": settings.APP_NAME})

    @app.get("/api/productos")
    def api_productos():
        try:
            productos = service.listar()
        except StoreError as e:
            return _error(str(e), 500)
        return _ok({"ok": True, "productos": [p.to_dict() for p in productos]})

    @app.get("/api/productos/<path:codigo>")
    def api_producto(codigo: str):
        try:
            p = service.obtener(codigo)
        except StoreError as e:
            return _error(str(e), 500)
        if p is None:
            return _error("Producto no encontrado", 404)
        return _ok({"ok": True, "producto": p.to_dict()})

    @app.delete("/api/productos/<path:codigo>")
    def api_eliminar_producto(codigo: str):
        try:
            deleted = service.eliminar(codigo)
        except StoreError as e:
            return _error(str(e), 500)
        if not deleted:
            return _error("Producto no encontrado", 404)
        return _ok({"ok": True, "codigo": codigo})

    def _guardar(rows, *, validar: bool):
        if isinstance(rows, dict):
            rows = [rows]
        if not isinstance(rows, list) or not rows:
            return _error("No hay datos para importar", 400)
        registros = [Registro.from_mapping(r) for r in rows if isinstance(r, dict)]
        try:
            res = service.guardar_registros(registros, validar=validar)
        except ValidationError as e:
            return _error(str(e), 400)
        except (ConfigError, StoreError) as e:
            return _error(str(e), 500)
        return _ok(res.to_dict())

    @app.post("/api/registros")
    def api_registro_manual():
        return _guardar(request.get_json(silent=True), validar=True)

    @app.post("/api/guardarImportacion")
    def api_guardar_importacion():
        return _guardar(request.get_json(silent=True), validar=False)

    @app.post("/api/importarExcel")
    def api_importar_excel():
        f = request.files.get("file")
        if f is None or not f.filename:
            return _error("Archivo inválido", 400)
        try:
            registros = service.importar_excel(data=f.read())
        except ExcelImportError as e:
            return _error(str(e), 400)
        payload = [r.to_payload() for r in registros]
        # Preview only; the client posts the records back to /api/guardarImportacion.
        return _ok({"ok": True, "total": len(payload), "registros": payload, "preview": payload[:10]})

    @app.get("/api/listado")
    def api_listado():
        try:
            items = service.listado_remoto(request.args.get("filtro", ""))
        except ConfigError as e:
            return _error(str(e), 500)
        except SyncError as e:
            status = 504 if e.timeout else 502
            return jsonify({"ok": False, "error": str(e), "timeout": e.timeout}), status
        if request.args.get("formato", "").lower() == "csv":
            nombre = f"productos_{datetime.now():%Y%m%d_%H%M%S}.csv"
            return Response(
                listado_csv(items),
                mimetype="text/csv",
                headers={"Content-Disposition": f"attachment; filename={nombre}"},
            )
        return _ok({"ok": True, "productos": items})

    @app.get("/api/plantilla")
    def api_plantilla():
        return send_file(
            BytesIO(template_bytes()),
            mimetype=XLSX_MIMETYPE,
            as_attachment=True,
            download_name="plantilla_productos.xlsx",
        )

    return app
