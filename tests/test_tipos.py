import pytest

from etiquetas.errores import ValidationError
from etiquetas.tipos_importacion import (
    Lote,
    Producto,
    Registro,
    flatten_all,
    flatten_product,
    group_products_by_code,
    validar_registro,
)


def _registro(codigo, lote="", fecha="", **kw):
    base = dict(marca="ROCHE", descripcion="COAGUCHECK", unidad="CAJA", empresa="Bioscientia")
    base.update(kw)
    return Registro(codigo=codigo, lote=lote, fechaExpiracion=fecha, **base)


def test_group_merges_lots_in_first_seen_order():
    registros = [
        _registro("B", "L1", "46000"),
        _registro("A", "L9", "46001"),
        _registro("B", "L2", "46002"),
    ]
    productos = group_products_by_code(registros)
    assert [p.codigo for p in productos] == ["B", "A"]
    assert productos[0].lotes == [Lote("L1", "46000"), Lote("L2", "46002")]


def test_group_drops_incomplete_lots():
    productos = group_products_by_code([_registro("A", "L1", ""), _registro("A", "", "46000")])
    assert productos[0].lotes == []


def test_group_then_flatten_keeps_lot_records():
    registros = [_registro("A", "L1", "46000"), _registro("A", "L2", "46001"), _registro("C", "L3", "46002")]
    assert flatten_all(group_products_by_code(registros)) == registros


def test_flatten_product_without_lots_yields_one_record():
    p = Producto(codigo="X", descripcion="Algo", marca="M", unidad="PZ", empresa="RBC")
    out = flatten_product(p)
    assert len(out) == 1
    assert out[0].lote == "" and out[0].fechaExpiracion == ""
    assert out[0].codigo == "X"


def test_payload_key_order():
    keys = list(_registro("A").to_payload().keys())
    assert keys == [
        "codigo",
        "marca",
        "descripcion",
        "unidad",
        "lote",
        "fechaExpiracion",
        "area",
        "presentacion",
        "empresa",
    ]


def test_from_mapping_trims_and_defaults():
    r = Registro.from_mapping({"codigo": " A1 ", "descripcion": "Kit", "lote": None})
    assert r.codigo == "A1"
    assert r.lote == ""
    assert r.area == ""


@pytest.mark.parametrize("codigo,descripcion", [("", "Kit"), ("A1", "  "), ("", "")])
def test_validar_registro_rejects_missing_fields(codigo, descripcion):
    with pytest.raises(ValidationError):
        validar_registro(Registro(codigo=codigo, descripcion=descripcion))


def test_validar_registro_accepts_minimal():
    validar_registro(Registro(codigo="A1", descripcion="Kit"))


def test_flatten_then_group_restores_products():
    productos = [
        Producto(codigo="A1", marca="ROCHE", descripcion="Kit", unidad="PZ", empresa="RBC", area="HEMATOLOGIA",
                 lotes=[Lote("L1", "46000"), Lote("L2", "46001")]),
        Producto(codigo="B2", marca="STAGO", descripcion="Buffer", unidad="KIT", empresa="Bioscientia"),
        Producto(codigo="C3", descripcion="Solo un lote", presentacion="Frasco 15mL", lotes=[Lote("L9", "46100")]),
    ]
    assert group_products_by_code(flatten_all(productos)) == productos
