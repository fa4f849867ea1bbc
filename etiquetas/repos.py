from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, select
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.orm import Session, selectinload

from etiquetas.models import LoteRow, ProductoRow
from etiquetas.tipos_importacion import Lote, Producto


def _to_producto(row: ProductoRow) -> Producto:
    return Producto(
        codigo=row.codigo,
        marca=row.marca,
        descripcion=row.descripcion,
        unidad=row.unidad,
        empresa=row.empresa,
        area=row.area,
        presentacion=row.presentacion,
        lotes=[Lote(lote=l.lote, fechaExpiracion=l.fecha_expiracion) for l in row.lotes],
    )


class ProductRepo:
    def __init__(self, session: Session):
        self.session = session

    def _upsert_row(self, p: Producto, now: datetime) -> None:
        values = {
            "codigo": p.codigo,
            "marca": p.marca or "",
            "descripcion": p.descripcion or "",
            "unidad": p.unidad or "",
            "empresa": p.empresa or "",
            "area": p.area or "",
            "presentacion": p.presentacion or "",
            "updated_at": now,
        }

        # Fast path for SQLite: single UPSERT statement.
        bind = self.session.get_bind()
        if bind is not None and getattr(bind.dialect, "name", "") == "sqlite":
            stmt = insert(ProductoRow).values(values)
            stmt = stmt.on_conflict_do_update(
                index_elements=[ProductoRow.codigo],
                set_={k: stmt.excluded[k] for k in values if k != "codigo"},
            )
            self.session.execute(stmt)
            return

        row = self.session.get(ProductoRow, p.codigo)
        if row is None:
            self.session.add(ProductoRow(**values))
        else:
            for k, v in values.items():
                setattr(row, k, v)
        self.session.flush()

    def upsert(self, p: Producto) -> int:
        """Replace product fields and its whole lot set. Returns lots written."""
        self._upsert_row(p, datetime.utcnow())

        self.session.execute(delete(LoteRow).where(LoteRow.codigo_producto == p.codigo))
        nuevos = [
            LoteRow(codigo_producto=p.codigo, lote=l.lote, fecha_expiracion=l.fechaExpiracion or "")
            for l in p.lotes
            if l.lote
        ]
        self.session.add_all(nuevos)
        self.session.flush()
        # Drop identity-map copies so later reads see the new lot set.
        self.session.expire_all()
        return len(nuevos)

    def list_all(self) -> list[Producto]:
        stmt = select(ProductoRow).options(selectinload(ProductoRow.lotes)).order_by(ProductoRow.codigo.asc())
        return [_to_producto(r) for r in self.session.execute(stmt).scalars().all()]

    def get(self, codigo: str) -> Producto | None:
        stmt = select(ProductoRow).options(selectinload(ProductoRow.lotes)).where(ProductoRow.codigo == codigo)
        row = self.session.execute(stmt).scalar_one_or_none()
        return _to_producto(row) if row is not None else None

    def delete(self, codigo: str) -> bool:
        # Explicit lot delete; does not depend on the FK pragma being active.
        self.session.execute(delete(LoteRow).where(LoteRow.codigo_producto == codigo))
        res = self.session.execute(delete(ProductoRow).where(ProductoRow.codigo == codigo))
        return bool(res.rowcount)
