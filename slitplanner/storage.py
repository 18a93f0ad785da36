"""
Persistência por chave do estoque, dos pedidos e das preferências

Todas as operações do armazenamento são "melhor esforço": falhas de E/S são
registradas no log e nunca propagadas. Uma leitura que falha devolve o valor
padrão informado por quem chamou.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Type, Union

from pydantic import BaseModel, ValidationError

from .config import ORDERS_KEY, ROLLS_KEY, THEME_KEY
from .models import Order, RawMaterialRoll, RollUpdate, ThemeMode

logger = logging.getLogger(__name__)

STORE_ERRORS = (OSError, TypeError, ValueError)


class KeyValueStore(ABC):
    """Interface do armazenamento por chave"""

    @abstractmethod
    def get(self, key: str, default: Any = None) -> Any:
        """Valor gravado sob a chave, ou default se ausente ou ilegível"""

    @abstractmethod
    def set(self, key: str, value: Any) -> bool:
        """Grava o valor; devolve False se a gravação falhar"""

    @abstractmethod
    def remove(self, key: str) -> None:
        ...

    @abstractmethod
    def clear(self) -> None:
        ...


class MemoryStore(KeyValueStore):
    """Armazenamento em memória; os valores são guardados já serializados"""

    def __init__(self):
        self._data: Dict[str, str] = {}

    def get(self, key: str, default: Any = None) -> Any:
        try:
            raw = self._data.get(key)
            if raw is None:
                return default
            return json.loads(raw)
        except STORE_ERRORS as e:
            logger.error("Erro ao ler '%s': %s", key, e)
            return default

    def set(self, key: str, value: Any) -> bool:
        try:
            self._data[key] = json.dumps(value)
            return True
        except STORE_ERRORS as e:
            logger.error("Erro ao gravar '%s': %s", key, e)
            return False

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()


class JsonFileStore(KeyValueStore):
    """Armazenamento em disco: um arquivo JSON por chave"""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        safe = re.sub(r"[^A-Za-z0-9._-]", "_", key)
        return self.directory / f"{safe}.json"

    def get(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        try:
            if not path.exists():
                return default
            with open(path, "r", encoding="utf-8") as f:
                return json.load(f)
        except STORE_ERRORS as e:
            logger.error("Erro ao ler '%s' de %s: %s", key, path, e)
            return default

    def set(self, key: str, value: Any) -> bool:
        path = self._path(key)
        tmp_path = path.with_suffix(".json.tmp")
        try:
            payload = json.dumps(value, indent=2, ensure_ascii=False)
            self.directory.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(payload)
            tmp_path.replace(path)
            return True
        except STORE_ERRORS as e:
            logger.error("Erro ao gravar '%s' em %s: %s", key, path, e)
            return False

    def remove(self, key: str) -> None:
        try:
            self._path(key).unlink(missing_ok=True)
        except OSError as e:
            logger.error("Erro ao remover '%s': %s", key, e)

    def clear(self) -> None:
        try:
            for path in self.directory.glob("*.json"):
                path.unlink()
        except OSError as e:
            logger.error("Erro ao limpar %s: %s", self.directory, e)


class _Collection:
    """Coleção de registros gravada inteira sob uma única chave"""

    model: Type[BaseModel]

    def __init__(self, store: KeyValueStore, key: str):
        self.store = store
        self.key = key

    def list(self) -> List[Any]:
        records = self.store.get(self.key, [])
        if not isinstance(records, list):
            logger.error("Conteúdo inválido em '%s'; ignorando", self.key)
            return []
        items = []
        for record in records:
            try:
                items.append(self.model.model_validate(record))
            except ValidationError as e:
                logger.error("Registro inválido em '%s' descartado: %s", self.key, e)
        return items

    def replace_all(self, items: List[Any]) -> bool:
        """Sobrescreve a coleção inteira; devolve False se a gravação falhar"""
        return self.store.set(self.key, [item.model_dump(mode="json") for item in items])

    def get(self, item_id: str) -> Optional[Any]:
        return next((item for item in self.list() if item.id == item_id), None)

    def add(self, item: Any) -> bool:
        items = self.list()
        if any(existing.id == item.id for existing in items):
            raise ValueError(f"Registro {item.id} já existe")
        items.append(item)
        return self.replace_all(items)

    def delete(self, item_id: str) -> bool:
        """Remove um registro; devolve False se a gravação falhar"""
        items = self.list()
        remaining = [item for item in items if item.id != item_id]
        if len(remaining) == len(items):
            raise KeyError(item_id)
        return self.replace_all(remaining)

    def seed(self, factory: Callable[[], List[Any]]) -> None:
        """Grava dados iniciais se a coleção ainda não existir"""
        if self.store.get(self.key) is None:
            self.replace_all(factory())


class InventoryRepository(_Collection):
    """Estoque de bobinas"""

    model = RawMaterialRoll

    def __init__(self, store: KeyValueStore, key: str = ROLLS_KEY):
        super().__init__(store, key)

    def update(self, roll_id: str, changes: RollUpdate) -> Optional[RawMaterialRoll]:
        """Edita largura e/ou peso de uma bobina"""
        rolls = self.list()
        updated = None
        for index, roll in enumerate(rolls):
            if roll.id == roll_id:
                data = roll.model_dump()
                data.update(changes.model_dump(exclude_none=True))
                updated = RawMaterialRoll.model_validate(data)
                rolls[index] = updated
                break
        if updated is not None:
            self.replace_all(rolls)
        return updated

    def search(self, query: str = "", material_type: Optional[str] = None) -> List[RawMaterialRoll]:
        """Busca textual por largura ou peso, como no cadastro de estoque"""
        q = (query or "").strip()
        rolls = self.list()
        if material_type:
            rolls = [roll for roll in rolls if roll.material_type == material_type]
        if not q:
            return rolls
        return [
            roll for roll in rolls
            if q in _format_number(roll.width) or q in _format_number(roll.weight)
            or q.lower() in roll.batch_number.lower()
        ]


class OrderRepository(_Collection):
    """Carteira de pedidos"""

    model = Order

    def __init__(self, store: KeyValueStore, key: str = ORDERS_KEY):
        super().__init__(store, key)

    def pending(self) -> List[Order]:
        return [order for order in self.list() if not order.is_fulfilled]


class PreferencesRepository:
    """Preferências da interface"""

    def __init__(self, store: KeyValueStore, key: str = THEME_KEY):
        self.store = store
        self.key = key

    def get_theme(self) -> ThemeMode:
        value = self.store.get(self.key, ThemeMode.LIGHT.value)
        try:
            return ThemeMode(value)
        except ValueError:
            logger.error("Tema inválido gravado: %r", value)
            return ThemeMode.LIGHT

    def set_theme(self, theme: ThemeMode) -> bool:
        return self.store.set(self.key, ThemeMode(theme).value)


def _format_number(value: float) -> str:
    return f"{value:g}"

