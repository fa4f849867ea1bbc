from __future__ import annotations

import logging
import threading
from typing import Iterable

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from etiquetas.db import create_engine_from_url, init_db, make_session_factory, session_scope
from etiquetas.errores import StoreError
from etiquetas.repos import ProductRepo
from etiquetas.tipos_importacion import Producto

logger = logging.getLogger(__name__)


class LocalStore:
    """Caché local de productos y lotes (SQLite vía SQLAlchemy).

    El esquema se crea la primera vez que se usa; llamadas concurrentes
    esperan a la misma inicialización.
    """

    def __init__(self, database_url: str):
        self.database_url = database_url
        self._session_factory: sessionmaker[Session] | None = None
        self._lock = threading.Lock()

    @property
    def initialized(self) -> bool:
        return self._session_factory is not None

    def init(self) -> sessionmaker[Session]:
        if self._session_factory is not None:
            return self._session_factory
        with self._lock:
            if self._session_factory is None:
                try:
                    engine = create_engine_from_url(self.database_url)
                    init_db(engine)
                except SQLAlchemyError as e:
                    raise StoreError(f"No se pudo abrir la base de datos: {e}") from e
                self._session_factory = make_session_factory(engine)
                logger.info("Base local lista: %s", self.database_url)
        return self._session_factory

    def upsert_product(self, producto: Producto) -> int:
        sf = self.init()
        try:
            with session_scope(sf) as session:
                return ProductRepo(session).upsert(producto)
        except SQLAlchemyError as e:
            logger.error("Error guardando producto %s: %s", producto.codigo, e)
            raise StoreError(f"Error al guardar el producto {producto.codigo}: {e}") from e

    def upsert_many(self, productos: Iterable[Producto]) -> int:
        # One transaction per product; a failure leaves earlier products saved.
        total = 0
        for p in productos:
            total += self.upsert_product(p)
        return total

    def get_all(self) -> list[Producto]:
        sf = self.init()
        try:
            with session_scope(sf) as session:
                return ProductRepo(session).list_all()
        except SQLAlchemyError as e:
            raise StoreError(f"Error al obtener productos: {e}") from e

    def get_by_code(self, codigo: str) -> Producto | None:
        sf = self.init()
        try:
            with session_scope(sf) as session:
                return ProductRepo(session).get(codigo)
        except SQLAlchemyError as e:
            raise StoreError(f"Error al obtener el producto {codigo}: {e}") from e

    def delete(self, codigo: str) -> bool:
        sf = self.init()
        try:
            with session_scope(sf) as session:
                return ProductRepo(session).delete(codigo)
        except SQLAlchemyError as e:
            raise StoreError(f"Error al eliminar el producto {codigo}: {e}") from e
