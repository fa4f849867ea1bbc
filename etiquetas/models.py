from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class ProductoRow(Base):
    __tablename__ = "productos"

    codigo: Mapped[str] = mapped_column(String(255), primary_key=True)

    marca: Mapped[str] = mapped_column(String(255), nullable=False, default="", index=True)
    descripcion: Mapped[str] = mapped_column(Text, nullable=False, default="", index=True)
    unidad: Mapped[str] = mapped_column(String(40), nullable=False, default="")
    empresa: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    area: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    presentacion: Mapped[str] = mapped_column(Text, nullable=False, default="")

    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    lotes: Mapped[list["LoteRow"]] = relationship(
        "LoteRow",
        back_populates="producto",
        cascade="all, delete-orphan",
        order_by="LoteRow.id",
    )


class LoteRow(Base):
    __tablename__ = "lotes"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    codigo_producto: Mapped[str] = mapped_column(
        String(255), ForeignKey("productos.codigo", ondelete="CASCADE"), nullable=False, index=True
    )
    lote: Mapped[str] = mapped_column(String(120), nullable=False, index=True)
    # Numeric day count as text, or whatever the source sheet had.
    fecha_expiracion: Mapped[str] = mapped_column(String(40), nullable=False, default="")

    producto: Mapped[ProductoRow] = relationship("ProductoRow", back_populates="lotes")
