"""
Camada de fronteira: dona da cópia gravável do estoque e dos pedidos
"""

import logging
import threading
from collections import defaultdict
from typing import List, Optional

from .config import Settings, load_settings
from .core import SlitPlanner, select_candidates
from .executor import PlanExecutor
from .models import (
    DashboardSummary, ErrorKind, ExecutionResult, MaterialStock,
    OptimizationPlan, Order, PlanRequest, PlanResult, RawMaterialRoll, RollUpdate
)
from .sample_data import sample_inventory, sample_orders
from .storage import (
    InventoryRepository, JsonFileStore, KeyValueStore, MemoryStore,
    OrderRepository, PreferencesRepository
)

logger = logging.getLogger(__name__)


class ProductionService:
    """
    Orquestra filtro, planejador e executor sobre os repositórios

    A execução lê, aplica e grava estoque e pedidos sob um único lock, de modo
    que dois operadores não consigam executar planos contra a mesma bobina.
    """

    def __init__(self, store: Optional[KeyValueStore] = None,
                 settings: Optional[Settings] = None, seed: bool = False):
        self.settings = settings or Settings()
        self.store = store if store is not None else MemoryStore()
        self.inventory = InventoryRepository(self.store)
        self.orders = OrderRepository(self.store)
        self.preferences = PreferencesRepository(self.store)
        self.planner = SlitPlanner(self.settings.constraints, time_limit_ms=self.settings.time_limit_ms)
        self.executor = PlanExecutor(self.settings.constraints)
        self._lock = threading.Lock()

        if seed:
            self.inventory.seed(sample_inventory)
            self.orders.seed(sample_orders)

    def plan(self, request: Optional[PlanRequest] = None) -> PlanResult:
        """Planeja uma bobina específica ou a melhor entre as candidatas"""
        request = request or PlanRequest()
        rolls = self.inventory.list()
        orders = self.orders.list()

        if request.roll_id is None:
            return self.planner.plan_best(rolls, orders, request.material_type, request.approximate)

        candidates = select_candidates(rolls, orders, request.material_type)
        roll = next((r for r in candidates.rolls if r.id == request.roll_id), None)
        return self.planner.plan(roll, candidates.orders, approximate=request.approximate)

    def execute(self, plan: OptimizationPlan) -> ExecutionResult:
        """
        Aplica um plano já confirmado pelo operador

        Se a gravação falhar o estado em memória não é desfeito: o resultado
        volta com persisted=False para quem chamou decidir o que fazer.
        """
        with self._lock:
            result = self.executor.execute(plan, self.inventory.list(), self.orders.list())
            if not result.success:
                return result

            saved_orders = self.orders.replace_all(result.orders)
            saved_rolls = self.inventory.replace_all(result.inventory)
            if not (saved_orders and saved_rolls):
                logger.error("Plano da bobina %s aplicado, mas não foi possível gravar o novo estado",
                             plan.roll_id)
                result.persisted = False
                result.error = ErrorKind.PERSISTENCE_FAILURE
                result.message += "\nAtenção: as alterações podem não sobreviver a um recarregamento."
            return result

    def add_roll(self, roll: RawMaterialRoll) -> bool:
        with self._lock:
            return self.inventory.add(roll)

    def update_roll(self, roll_id: str, changes: RollUpdate) -> Optional[RawMaterialRoll]:
        with self._lock:
            return self.inventory.update(roll_id, changes)

    def delete_roll(self, roll_id: str) -> bool:
        with self._lock:
            return self.inventory.delete(roll_id)

    def add_order(self, order: Order) -> bool:
        with self._lock:
            return self.orders.add(order)

    def delete_order(self, order_id: str) -> bool:
        with self._lock:
            return self.orders.delete(order_id)

    def dashboard(self) -> DashboardSummary:
        """Resumo do estoque e da carteira"""
        rolls = self.inventory.list()
        orders = self.orders.list()
        pending = [order for order in orders if not order.is_fulfilled]

        by_material = defaultdict(list)
        for roll in rolls:
            by_material[roll.material_type].append(roll)

        stock: List[MaterialStock] = [
            MaterialStock(
                material_type=material,
                rolls=len(group),
                total_width=sum(roll.width for roll in group),
                total_weight=round(sum(roll.weight for roll in group), 2),
            )
            for material, group in sorted(by_material.items())
        ]

        return DashboardSummary(
            total_rolls=len(rolls),
            remnant_rolls=sum(1 for roll in rolls if roll.is_remnant),
            total_weight=sum(roll.weight for roll in rolls),
            stock_by_material=stock,
            pending_orders=len(pending),
            fulfilled_orders=len(orders) - len(pending),
            pending_width=sum(order.required_width for order in pending),
            next_due_date=min((order.due_date for order in pending), default=None),
        )


def build_service(settings: Optional[Settings] = None, seed: bool = True) -> ProductionService:
    """Cria o serviço a partir da configuração (disco se data_dir estiver definido)"""
    settings = settings or load_settings()
    store = JsonFileStore(settings.data_dir) if settings.data_dir else MemoryStore()
    return ProductionService(store, settings, seed=seed)
