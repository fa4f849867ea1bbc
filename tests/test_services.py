import pytest
import requests

from etiquetas.errores import ConfigError, ValidationError
from etiquetas.excel_export import template_bytes
from etiquetas.services import InventarioService
from etiquetas.settings import ApiEndpoints
from etiquetas.sincronizacion import SincronizadorApi
from etiquetas.tipos_importacion import Lote, Producto, Registro

from conftest import FakeResponse, FakeSession

PROXY = "http://localhost:3000/api/guardar"


def _service(store, routes=None, **endpoints):
    session = FakeSession(routes)
    sync = SincronizadorApi(ApiEndpoints(**endpoints), session=session, timeout=5)
    return InventarioService(store, sync), session


def _producto():
    return Producto(codigo="A1", marca="ROCHE", descripcion="Kit", unidad="PZ", lotes=[Lote("L1", "46000")])


def test_save_and_sync(store):
    service, session = _service(store, {PROXY: FakeResponse(200, {"ok": True})}, proxy_save_url=PROXY)
    res = service.guardar_producto(_producto())
    assert res.ok and res.sincronizado
    assert (res.guardados, res.lotes) == (1, 1)
    assert len(session.calls) == 1


def test_sync_failure_keeps_local_write(store):
    service, _ = _service(store, {PROXY: requests.ConnectionError("refused")}, proxy_save_url=PROXY)
    res = service.guardar_producto(_producto())

    assert res.ok
    assert not res.sincronizado
    assert "no se pudo sincronizar" in res.advertencia
    assert store.get_by_code("A1").lotes == [Lote("L1", "46000")]


def test_sync_timeout_is_flagged(store):
    service, _ = _service(store, {PROXY: requests.Timeout("slow")}, proxy_save_url=PROXY)
    res = service.guardar_producto(_producto())
    assert res.timeout
    assert store.get_by_code("A1") is not None


def test_missing_api_config_fails_before_local_write(store):
    service, session = _service(store)
    with pytest.raises(ConfigError):
        service.guardar_producto(_producto())
    assert session.calls == []
    assert store.get_all() == []


def test_without_sync_only_saves_locally(store):
    service = InventarioService(store)
    res = service.guardar_producto(_producto())
    assert res.ok and not res.sincronizado and res.advertencia is None
    with pytest.raises(ConfigError):
        service.listado_remoto()


def test_manual_record_validation(store):
    service = InventarioService(store)
    with pytest.raises(ValidationError):
        service.guardar_registros([Registro(codigo="A1", descripcion="")], validar=True)
    assert store.get_all() == []


def test_import_then_save_groups_by_code(store):
    service = InventarioService(store)
    registros = service.importar_excel(data=template_bytes())
    res = service.guardar_registros(registros)

    assert res.guardados == 5
    assert [p.codigo for p in service.listar()] == sorted(r.codigo for r in registros)
    assert service.obtener("499-4V").lotes == [Lote("271596", "2026-06-30")]


def test_delete(store):
    service = InventarioService(store)
    service.guardar_producto(_producto())
    assert service.eliminar("A1")
    assert service.obtener("A1") is None


def test_manual_record_date_is_normalized(store):
    service = InventarioService(store)
    registro = Registro(codigo="A1", descripcion="Kit", lote="L1", fechaExpiracion="9/30/26")
    service.guardar_registros([registro], validar=True)
    assert store.get_by_code("A1").lotes == [Lote("L1", "46295")]


def test_proxy_error_without_direct_url_keeps_earlier_and_new_writes(store):
    store.upsert_product(Producto(codigo="B2", descripcion="Buffer", lotes=[Lote("L7", "46010")]))
    service, session = _service(store, {PROXY: FakeResponse(500, text="Internal Server Error")}, proxy_save_url=PROXY)

    res = service.guardar_producto(_producto())

    assert res.ok and not res.sincronizado and not res.timeout
    assert "500" in res.advertencia
    assert len(session.calls) == 1
    assert store.get_by_code("B2").lotes == [Lote("L7", "46010")]
    assert store.get_by_code("A1").lotes == [Lote("L1", "46000")]
