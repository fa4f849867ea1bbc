from __future__ import annotations

import logging
from typing import Any, Iterable

import requests

from etiquetas.errores import ConfigError, SyncError, SyncTimeoutError
from etiquetas.settings import ApiEndpoints
from etiquetas.tipos_importacion import Producto, Registro, flatten_product

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def aplanar(items: Iterable[Producto | Registro]) -> list[dict[str, str]]:
    """Productos -> one payload per lot (or one without lot); Registros as-is."""
    out: list[dict[str, str]] = []
    for item in items:
        if isinstance(item, Producto):
            out.extend(r.to_payload() for r in flatten_product(item))
        else:
            out.append(item.to_payload())
    return out


def extraer_lista(data: Any) -> list[Any]:
    """Accept a bare array or an object holding the array in its first list property."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key, value in data.items():
            if isinstance(value, list):
                logger.info("Listado obtenido en propiedad '%s': %d productos", key, len(value))
                return value
        logger.warning("La respuesta no contiene un array de productos")
        return []
    logger.warning("La respuesta no tiene el formato esperado")
    return []


def _sin_directo(message: str, endpoint: str, n: int, last: SyncError | None) -> SyncError:
    if last is not None:
        message = f"{message}: {last}"
    if last is not None and last.timeout:
        return SyncTimeoutError(message, endpoint=endpoint, registros=n)
    return SyncError(message, endpoint=endpoint, registros=n)


def _detalle_error(resp: requests.Response) -> str:
    return (resp.text or "").strip()[:500]


class SincronizadorApi:
    """Espejo remoto de la caché local.

    Primero intenta el intermediario local (proxy) y, si falla, la API directa.
    Los fallos se reportan como ``SyncError``; nunca tocan la base local.
    """

    def __init__(
        self,
        endpoints: ApiEndpoints,
        *,
        session: requests.Session | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self.endpoints = endpoints
        self.session = session or requests.Session()
        self.timeout = float(timeout)

    def check_write_config(self) -> None:
        if not self.endpoints.can_write:
            raise ConfigError("No hay URL configurada para guardar en la API (PROXY_SAVE_URL / API_SAVE_URL)")

    def check_read_config(self) -> None:
        if not self.endpoints.can_read:
            raise ConfigError("No hay URL configurada para el listado (PROXY_LIST_URL / API_LIST_URL)")

    def _error(self, url: str, n: int, e: Exception) -> SyncError:
        if isinstance(e, SyncError):
            return e
        if isinstance(e, requests.Timeout):
            return SyncTimeoutError(f"Tiempo de espera agotado en {url} ({n} registros)", endpoint=url, registros=n)
        return SyncError(f"Error de red en {url} ({n} registros): {e}", endpoint=url, registros=n)

    def _post_proxy(self, url: str, payload: list[dict[str, str]]) -> None:
        resp = self.session.post(url, json=payload, timeout=self.timeout)
        if not resp.ok:
            detalle = _detalle_error(resp)
            raise SyncError(
                f"Error al guardar en la API (proxy): {resp.status_code} {resp.reason}"
                + (f" - {detalle}" if detalle else ""),
                endpoint=url,
                registros=len(payload),
            )
        try:
            logger.debug("Respuesta de la API (proxy): %s", resp.json())
        except ValueError:
            logger.debug("Respuesta de la API (proxy) (texto): %s", _detalle_error(resp))

    def _post_directo(self, url: str, payload: list[dict[str, str]]) -> None:
        # The direct endpoint may answer with an unreadable body; only a raised
        # exception counts as failure.
        resp = self.session.post(url, json=payload, timeout=self.timeout)
        if not resp.ok:
            logger.warning("Respuesta directa con estado %s de %s", resp.status_code, url)

    def push(self, items: Iterable[Producto | Registro]) -> int:
        self.check_write_config()
        payload = aplanar(items)
        n = len(payload)
        logger.info("Enviando %d registros en un solo array", n)

        last: SyncError | None = None
        proxy = self.endpoints.proxy_save_url
        if proxy:
            try:
                self._post_proxy(proxy, payload)
                logger.info("%d registros guardados en la API a través del proxy", n)
                return n
            except (requests.RequestException, SyncError) as e:
                last = self._error(proxy, n, e)
                logger.warning("Error al usar el proxy (%s), se intenta la URL directa: %s", proxy, last)

        direct = self.endpoints.save_url
        if not direct:
            raise _sin_directo("No se pudo guardar con el proxy y no hay URL externa configurada", proxy, n, last)

        try:
            self._post_directo(direct, payload)
        except requests.RequestException as e:
            err = self._error(direct, n, e)
            logger.error("Error al guardar directamente en %s: %s", direct, err)
            raise err from e

        logger.info("%d registros guardados directamente en la API", n)
        return n

    def _get_lista(self, url: str) -> list[Any]:
        resp = self.session.get(url, headers={"Content-Type": "application/json"}, timeout=self.timeout)
        if not resp.ok:
            detalle = _detalle_error(resp)
            raise SyncError(
                f"Error al obtener listado: {resp.status_code} {resp.reason}" + (f" - {detalle}" if detalle else ""),
                endpoint=url,
            )
        try:
            data = resp.json()
        except ValueError as e:
            raise SyncError(f"Respuesta de listado no es JSON: {e}", endpoint=url) from e
        return extraer_lista(data)

    def fetch_list(self) -> list[Any]:
        self.check_read_config()

        last: SyncError | None = None
        proxy = self.endpoints.proxy_list_url
        if proxy:
            try:
                return self._get_lista(proxy)
            except (requests.RequestException, SyncError) as e:
                last = self._error(proxy, 0, e)
                logger.warning("Error al usar el proxy para el listado (%s): %s", proxy, last)

        direct = self.endpoints.list_url
        if not direct:
            raise _sin_directo("No se pudo obtener el listado con el proxy y no hay URL externa configurada", proxy, 0, last)

        try:
            return self._get_lista(direct)
        except SyncError as e:
            logger.error("Error al obtener el listado directamente de %s: %s", direct, e)
            raise
        except requests.RequestException as e:
            err = self._error(direct, 0, e)
            logger.error("Error al obtener el listado directamente de %s: %s", direct, err)
            raise err from e
