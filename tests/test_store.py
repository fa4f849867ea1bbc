from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from etiquetas.db import session_scope
from etiquetas.errores import StoreError
from etiquetas.models import LoteRow
from etiquetas.store import LocalStore
from etiquetas.tipos_importacion import Lote, Producto


def _producto(codigo="A1", lotes=(), **kw):
    base = dict(marca="ROCHE", descripcion="COAGUCHECK", unidad="CAJA", empresa="Bioscientia")
    base.update(kw)
    return Producto(codigo=codigo, lotes=list(lotes), **base)


def _count_lotes(store: LocalStore) -> int:
    with session_scope(store.init()) as s:
        return s.execute(select(func.count()).select_from(LoteRow)).scalar_one()


def test_lazy_init(store):
    assert not store.initialized
    assert store.get_all() == []
    assert store.initialized


def test_upsert_replaces_lot_set(store):
    store.upsert_product(_producto(lotes=[Lote("L1", "46000"), Lote("L2", "46001")]))
    written = store.upsert_product(_producto(descripcion="Nueva", lotes=[Lote("L3", "46002")]))

    assert written == 1
    p = store.get_by_code("A1")
    assert p.descripcion == "Nueva"
    assert p.lotes == [Lote("L3", "46002")]
    assert _count_lotes(store) == 1


def test_lots_without_number_are_not_stored(store):
    written = store.upsert_product(_producto(lotes=[Lote("", "46000"), Lote("L1", "")]))
    assert written == 1
    assert store.get_by_code("A1").lotes == [Lote("L1", "")]


def test_get_all_ordered_by_code(store):
    store.upsert_many([_producto("B"), _producto("A"), _producto("C")])
    assert [p.codigo for p in store.get_all()] == ["A", "B", "C"]


def test_get_missing_returns_none(store):
    assert store.get_by_code("nope") is None


def test_delete_cascades_to_lots(store):
    store.upsert_product(_producto(lotes=[Lote("L1", "46000")]))
    store.upsert_product(_producto("B2", lotes=[Lote("L9", "46009")]))

    assert store.delete("A1") is True
    assert store.get_by_code("A1") is None
    assert _count_lotes(store) == 1
    assert store.delete("A1") is False


def test_data_survives_new_store_instance(tmp_path):
    url = f"sqlite:///{(tmp_path / 'persist.sqlite').as_posix()}"
    LocalStore(url).upsert_product(_producto(lotes=[Lote("L1", "46000")]))
    assert LocalStore(url).get_by_code("A1").lotes == [Lote("L1", "46000")]


def test_concurrent_first_use_initializes_once(store):
    factories = []

    def work(i):
        factories.append(store.init())
        store.upsert_product(_producto(f"P{i}"))

    with ThreadPoolExecutor(max_workers=8) as pool:
        list(pool.map(work, range(16)))

    assert len({id(f) for f in factories}) == 1
    assert len(store.get_all()) == 16


def test_unopenable_database_raises_store_error(tmp_path):
    bad = tmp_path / "no_dir" / "x.sqlite"
    store = LocalStore(f"sqlite:///{bad.as_posix()}")
    with pytest.raises(StoreError):
        store.get_all()


def test_failed_upsert_keeps_previous_state(store, monkeypatch):
    store.upsert_product(_producto(descripcion="Original", lotes=[Lote("L1", "46000")]))

    def falla(self, instances):
        raise SQLAlchemyError("disco lleno")

    monkeypatch.setattr(Session, "add_all", falla)
    with pytest.raises(StoreError):
        store.upsert_product(_producto(descripcion="Nueva", lotes=[Lote("L2", "46001")]))
    monkeypatch.undo()

    p = store.get_by_code("A1")
    assert p.descripcion == "Original"
    assert p.lotes == [Lote("L1", "46000")]
