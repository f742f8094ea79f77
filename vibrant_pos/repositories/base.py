# ==============================================================================
# STORE DE DOCUMENTOS JSON - Base de toda la persistencia
# ==============================================================================
# Un único árbol JSON guardado en un archivo, con la misma forma que una
# base de datos en tiempo real:
#
#   {
#     "products":  {"<id>": {...}},
#     "customers": {"<id>": {...}},
#     "sales":     {"<id>": {...}},
#     "users":     {"<id>": {...}},
#     "settings":  {...},
#     "audit":     {"<id>": {...}}
#   }
#
# Operaciones: create / write / patch / delete / adjust sobre rutas
# "coleccion/id/campo", transacciones todo-o-nada y suscripciones que
# reciben la colección completa después de cada cambio.
#
# Las transacciones trabajan sobre una copia del árbol y se confirman con
# UNA sola escritura a disco. Si algo falla, el árbol en memoria y el
# archivo quedan como estaban.
# ==============================================================================

import copy
import json
import logging
import math
import os
import threading
import uuid
from contextlib import contextmanager
from queue import Queue, Empty
from typing import Any, Callable, Dict, Iterator, List, Optional, Set

from vibrant_pos.errors import PersistenceError

logger = logging.getLogger(__name__)


# ==============================================================================
# UTILIDADES DE RUTAS
# ==============================================================================

def split_path(path: str) -> List[str]:
    """
    Divide una ruta "a/b/c" en segmentos.

    Raises:
        ValueError: Si la ruta está vacía
    """
    parts = [p for p in str(path).strip('/').split('/') if p]
    if not parts:
        raise ValueError('Ruta vacía')
    return parts


def _get_in(tree: Dict[str, Any], parts: List[str]) -> Any:
    node = tree
    for part in parts:
        if not isinstance(node, dict) or part not in node:
            return None
        node = node[part]
    return node


def _set_in(tree: Dict[str, Any], parts: List[str], value: Any) -> None:
    node = tree
    for part in parts[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[parts[-1]] = value


def _delete_in(tree: Dict[str, Any], parts: List[str]) -> bool:
    parent = _get_in(tree, parts[:-1]) if len(parts) > 1 else tree
    if isinstance(parent, dict) and parts[-1] in parent:
        del parent[parts[-1]]
        return True
    return False


def as_number(value: Any) -> Any:
    """
    Convierte un valor guardado a número. Vacíos, textos inválidos,
    NaN e infinitos cuentan como 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if math.isnan(number) or math.isinf(number):
        return 0
    return int(number) if number.is_integer() else number


def as_text(value: Any) -> str:
    """Texto recortado. None cuenta como vacío; números se convierten."""
    if value is None:
        return ''
    return str(value).strip()


# ==============================================================================
# TRANSACCIÓN
# ==============================================================================

class StoreTransaction:
    """
    Vista mutable de una copia privada del árbol.
    Solo se obtiene mediante JsonDocumentStore.transaction().
    """

    def __init__(self, store: 'JsonDocumentStore', tree: Dict[str, Any]):
        self._store = store
        self.tree = tree
        self.touched: Set[str] = set()

    def _touch(self, parts: List[str]) -> None:
        self.touched.add(parts[0])

    def get(self, path: str) -> Any:
        """Copia del valor en la ruta (None si no existe)."""
        return copy.deepcopy(_get_in(self.tree, split_path(path)))

    def create_key(self, collection: str) -> str:
        """Genera una clave nueva para la colección (sin escribir)."""
        return self._store.new_key()

    def create(self, collection: str, value: Dict[str, Any]) -> str:
        """
        Escribe un documento bajo una clave nueva.
        La clave se guarda también en el campo 'id' del documento.
        """
        key = self.create_key(collection)
        self.write(f'{collection}/{key}', dict(value, id=key))
        return key

    def write(self, path: str, value: Any) -> None:
        """Reemplaza el valor en la ruta."""
        parts = split_path(path)
        _set_in(self.tree, parts, copy.deepcopy(value))
        self._touch(parts)

    def patch(self, path: str, partial: Dict[str, Any]) -> None:
        """
        Mezcla campos en el documento de la ruta.
        Un campo con valor None se elimina.
        """
        parts = split_path(path)
        current = _get_in(self.tree, parts)
        doc = current if isinstance(current, dict) else {}
        for key, value in partial.items():
            if value is None:
                doc.pop(key, None)
            else:
                doc[key] = copy.deepcopy(value)
        _set_in(self.tree, parts, doc)
        self._touch(parts)

    def delete(self, path: str) -> bool:
        """Elimina la ruta. Retorna True si existía."""
        parts = split_path(path)
        removed = _delete_in(self.tree, parts)
        if removed:
            self._touch(parts)
        return removed

    def adjust(self, path: str, delta: Any, minimum: Any = None) -> Any:
        """
        Suma delta al número guardado en la ruta y retorna el nuevo valor.
        Con minimum, el resultado nunca queda por debajo de ese valor.
        """
        parts = split_path(path)
        new_value = as_number(_get_in(self.tree, parts)) + delta
        if minimum is not None and new_value < minimum:
            new_value = minimum
        _set_in(self.tree, parts, new_value)
        self._touch(parts)
        return new_value


# ==============================================================================
# STORE
# ==============================================================================

class JsonDocumentStore:
    """
    Árbol JSON persistido en un archivo con escrituras atómicas.

    Un lock re-entrante serializa todas las escrituras del proceso, así que
    leer-modificar-escribir dentro de una transacción no pierde
    actualizaciones concurrentes.

    NOTA: no anidar transacciones; cada operación simple abre la suya.
    """

    def __init__(self, file_path: str):
        """
        Args:
            file_path: Ruta absoluta al archivo JSON del árbol
        """
        self.file_path = file_path
        self._lock = threading.RLock()
        self._subscribers: Dict[str, List[Callable[[Any], None]]] = {}
        directory = os.path.dirname(os.path.abspath(file_path))
        os.makedirs(directory, exist_ok=True)
        self._tree: Dict[str, Any] = self._read_raw()

    # =========================================================================
    # ARCHIVO
    # =========================================================================

    def _read_raw(self) -> Dict[str, Any]:
        """Lee el árbol del archivo; vacío si no existe o está corrupto."""
        with self._lock:
            try:
                with open(self.file_path, 'r', encoding='utf-8') as f:
                    data = json.load(f)
            except FileNotFoundError:
                return {}
            except json.JSONDecodeError:
                logger.error("Archivo de datos corrupto, se inicia vacío: %s", self.file_path)
                return {}
            return data if isinstance(data, dict) else {}

    def _write_raw(self, data: Dict[str, Any]) -> None:
        """
        Escribe el árbol completo: archivo temporal y luego os.replace.

        Raises:
            PersistenceError: Si la escritura falla
        """
        with self._lock:
            temp_path = self.file_path + '.tmp'
            try:
                with open(temp_path, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                os.replace(temp_path, self.file_path)
            except (OSError, TypeError, ValueError) as exc:
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                logger.error("Fallo al escribir %s: %s", self.file_path, exc)
                raise PersistenceError('Não foi possível salvar os dados.') from exc

    def reload(self) -> None:
        """Recarga el árbol desde el archivo (cambios externos)."""
        with self._lock:
            self._tree = self._read_raw()
            collections = set(self._tree.keys()) | set(self._subscribers.keys())
        self._notify(collections)

    # =========================================================================
    # LECTURA
    # =========================================================================

    @staticmethod
    def new_key() -> str:
        """Clave única para documentos nuevos."""
        return uuid.uuid4().hex

    def get(self, path: str) -> Any:
        """Copia del valor en la ruta (None si no existe)."""
        with self._lock:
            return copy.deepcopy(_get_in(self._tree, split_path(path)))

    # =========================================================================
    # ESCRITURA
    # =========================================================================

    @contextmanager
    def transaction(self) -> Iterator[StoreTransaction]:
        """
        Agrupa varias escrituras en una sola unidad atómica.

        Uso:
            with store.transaction() as txn:
                sale_id = txn.create('sales', sale)
                txn.adjust(f'products/{pid}/quantity', -2, minimum=0)

        Si el bloque lanza una excepción no se aplica ningún cambio.
        """
        with self._lock:
            txn = StoreTransaction(self, copy.deepcopy(self._tree))
            yield txn
            touched = set(txn.touched)
            if touched:
                self._write_raw(txn.tree)
                self._tree = txn.tree
        if touched:
            self._notify(touched)

    def create(self, collection: str, value: Dict[str, Any]) -> str:
        with self.transaction() as txn:
            return txn.create(collection, value)

    def write(self, path: str, value: Any) -> None:
        with self.transaction() as txn:
            txn.write(path, value)

    def patch(self, path: str, partial: Dict[str, Any]) -> None:
        with self.transaction() as txn:
            txn.patch(path, partial)

    def delete(self, path: str) -> bool:
        with self.transaction() as txn:
            return txn.delete(path)

    def adjust(self, path: str, delta: Any, minimum: Any = None) -> Any:
        with self.transaction() as txn:
            return txn.adjust(path, delta, minimum)

    # =========================================================================
    # SUSCRIPCIONES
    # =========================================================================

    def subscribe(self, collection: str, callback: Callable[[Any], None]) -> Callable[[], None]:
        """
        Registra un callback que recibe la colección completa ahora y
        después de cada cambio confirmado en ella.

        Returns:
            Función para cancelar la suscripción
        """
        with self._lock:
            self._subscribers.setdefault(collection, []).append(callback)
            snapshot = self.get(collection)
        callback(snapshot)

        def unsubscribe() -> None:
            with self._lock:
                callbacks = self._subscribers.get(collection, [])
                if callback in callbacks:
                    callbacks.remove(callback)

        return unsubscribe

    def snapshots(self, collection: str, timeout: Optional[float] = None) -> Iterator[Any]:
        """
        Secuencia perezosa de snapshots completos de la colección.
        La suscripción empieza en el primer next() y se cancela al cerrar
        el generador. Con timeout, termina si no llega ningún cambio.
        """
        queue: Queue = Queue()
        unsubscribe = self.subscribe(collection, queue.put)
        try:
            while True:
                try:
                    yield queue.get(timeout=timeout)
                except Empty:
                    return
        finally:
            unsubscribe()

    def _notify(self, collections: Set[str]) -> None:
        for collection in collections:
            with self._lock:
                callbacks = list(self._subscribers.get(collection, []))
                if not callbacks:
                    continue
                snapshot = self.get(collection)
            for callback in callbacks:
                try:
                    callback(copy.deepcopy(snapshot))
                except Exception:
                    logger.exception("Error en suscriptor de '%s'", collection)


# ==============================================================================
# REPOSITORIO BASE POR COLECCIÓN
# ==============================================================================

class CollectionRepository:
    """
    Repositorio base para una colección del árbol.
    El ID es la clave del documento dentro de la colección.

    Ejemplo: products -> {"<id>": {...}, "<id>": {...}}
    """

    collection = ''

    def __init__(self, store: JsonDocumentStore):
        """
        Args:
            store: Store compartido por todos los repositorios
        """
        self.store = store

    def path(self, record_id: str) -> str:
        """Ruta del documento dentro del árbol."""
        return f'{self.collection}/{record_id}'

    @staticmethod
    def valid_id(record_id: Any) -> bool:
        return bool(record_id) and '/' not in str(record_id)

    def get_all(self) -> Dict[str, Dict[str, Any]]:
        """
        Obtiene todos los registros.

        Returns:
            Diccionario {id: datos}
        """
        data = self.store.get(self.collection)
        return data if isinstance(data, dict) else {}

    def list_all(self) -> List[Dict[str, Any]]:
        """Registros como lista, con 'id' garantizado en cada uno."""
        return self._as_list(self.get_all())

    @staticmethod
    def _as_list(data: Any) -> List[Dict[str, Any]]:
        if not isinstance(data, dict):
            return []
        return [dict(value, id=key) for key, value in data.items() if isinstance(value, dict)]

    def get_by_id(self, record_id: str) -> Optional[Dict[str, Any]]:
        """
        Obtiene un registro por su ID.

        Returns:
            Datos del registro o None si no existe
        """
        if not self.valid_id(record_id):
            return None
        record = self.store.get(self.path(record_id))
        if not isinstance(record, dict):
            return None
        record['id'] = record_id
        return record

    def create(self, data: Dict[str, Any]) -> str:
        """Crea un registro con clave nueva y retorna la clave."""
        return self.store.create(self.collection, data)

    def update(self, record_id: str, updates: Dict[str, Any]) -> None:
        """Actualiza solo los campos indicados."""
        self.store.patch(self.path(record_id), updates)

    def delete(self, record_id: str) -> Optional[Dict[str, Any]]:
        """
        Elimina un registro.

        Returns:
            Datos del registro eliminado o None si no existía
        """
        if not self.valid_id(record_id):
            return None
        with self.store.transaction() as txn:
            removed = txn.get(self.path(record_id))
            if removed is not None:
                txn.delete(self.path(record_id))
        return removed

    def subscribe(self, callback: Callable[[List[Dict[str, Any]]], None]) -> Callable[[], None]:
        """Suscribe a la colección entregando listas de registros."""
        return self.store.subscribe(self.collection, lambda snap: callback(self._as_list(snap)))
