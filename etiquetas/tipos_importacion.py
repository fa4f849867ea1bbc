from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Mapping

from etiquetas.errores import ValidationError


@dataclass(frozen=True)
class Registro:
    """Fila plana: un producto con a lo sumo un lote.

    Es la unidad que produce el importador de Excel y la que espera la API remota.
    """

    codigo: str
    marca: str = ""
    descripcion: str = ""
    unidad: str = ""
    lote: str = ""
    fechaExpiracion: str = ""
    empresa: str = ""
    area: str = ""
    presentacion: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "Registro":
        def val(k: str) -> str:
            v = data.get(k)
            return "" if v is None else str(v).strip()

        return cls(
            codigo=val("codigo"),
            marca=val("marca"),
            descripcion=val("descripcion"),
            unidad=val("unidad"),
            lote=val("lote"),
            fechaExpiracion=val("fechaExpiracion"),
            empresa=val("empresa"),
            area=val("area"),
            presentacion=val("presentacion"),
        )

    def to_payload(self) -> dict[str, str]:
        # Key order matches what the remote API receives.
        return {
            "codigo": self.codigo,
            "marca": self.marca,
            "descripcion": self.descripcion,
            "unidad": self.unidad,
            "lote": self.lote or "",
            "fechaExpiracion": self.fechaExpiracion or "",
            "area": self.area or "",
            "presentacion": self.presentacion or "",
            "empresa": self.empresa,
        }


@dataclass(frozen=True)
class Lote:
    lote: str
    fechaExpiracion: str


@dataclass
class Producto:
    codigo: str
    marca: str = ""
    descripcion: str = ""
    unidad: str = ""
    empresa: str = ""
    area: str = ""
    presentacion: str = ""
    lotes: list[Lote] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "codigo": self.codigo,
            "marca": self.marca,
            "descripcion": self.descripcion,
            "unidad": self.unidad,
            "empresa": self.empresa,
            "area": self.area,
            "presentacion": self.presentacion,
            "lotes": [{"lote": l.lote, "fechaExpiracion": l.fechaExpiracion} for l in self.lotes],
        }


def _lote_de(registro: Registro) -> Lote | None:
    if registro.lote and registro.fechaExpiracion:
        return Lote(lote=registro.lote, fechaExpiracion=registro.fechaExpiracion)
    return None


def flat_to_nested(registro: Registro) -> Producto:
    lote = _lote_de(registro)
    return Producto(
        codigo=registro.codigo,
        marca=registro.marca,
        descripcion=registro.descripcion,
        unidad=registro.unidad,
        empresa=registro.empresa,
        area=registro.area or "",
        presentacion=registro.presentacion or "",
        lotes=[lote] if lote else [],
    )


def group_products_by_code(registros: Iterable[Registro]) -> list[Producto]:
    """Merge flat records sharing a code into one product with its lots.

    Products keep first-seen order; product fields come from the first record of
    each code. Lots without number or expiry date are dropped.
    """
    por_codigo: dict[str, Producto] = {}
    for r in registros:
        actual = por_codigo.get(r.codigo)
        if actual is None:
            por_codigo[r.codigo] = flat_to_nested(r)
            continue
        lote = _lote_de(r)
        if lote:
            actual.lotes.append(lote)
    return list(por_codigo.values())


def flatten_product(producto: Producto) -> list[Registro]:
    base = dict(
        codigo=producto.codigo,
        marca=producto.marca,
        descripcion=producto.descripcion,
        unidad=producto.unidad,
        empresa=producto.empresa,
        area=producto.area or "",
        presentacion=producto.presentacion or "",
    )
    if not producto.lotes:
        return [Registro(lote="", fechaExpiracion="", **base)]
    return [Registro(lote=l.lote, fechaExpiracion=l.fechaExpiracion, **base) for l in producto.lotes]


def flatten_all(productos: Iterable[Producto]) -> list[Registro]:
    out: list[Registro] = []
    for p in productos:
        out.extend(flatten_product(p))
    return out


def validar_registro(registro: Registro) -> None:
    if not (registro.codigo or "").strip() or not (registro.descripcion or "").strip():
        raise ValidationError("El código y la descripción son obligatorios")
