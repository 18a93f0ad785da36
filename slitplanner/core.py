"""
Núcleo do sistema SlitPlanner com os algoritmos de otimização
"""

import logging
import math
import time
from decimal import Decimal
from typing import List, Optional, Sequence, Tuple

from .models import (
    CandidateSet, CuttingConstraints, ErrorKind, Order,
    OptimizationPlan, PlanResult, RawMaterialRoll, StripCut
)

logger = logging.getLogger(__name__)

EXACT_ALGORITHM = "exact_dp"
APPROXIMATE_ALGORITHM = "best_fit_decreasing"

# Tolerância para comparações de largura em ponto flutuante
WIDTH_TOLERANCE = 1e-6

# Casas decimais que a grade da busca exata acompanha; além disso ela arredonda
MAX_GRID_DECIMALS = 2


def select_candidates(rolls: Sequence[RawMaterialRoll], orders: Sequence[Order],
                      material_type: Optional[str] = None) -> CandidateSet:
    """
    Filtra o estoque e a carteira para uma tentativa de planejamento

    Args:
        rolls: Bobinas em estoque
        orders: Pedidos cadastrados
        material_type: Restringe as bobinas a um tipo de material

    Returns:
        Bobinas com estoque e pedidos ainda não atendidos (listas vazias se nada servir)
    """
    eligible_rolls = [
        roll for roll in rolls
        if roll.width > 0 and roll.weight > 0
        and (material_type is None or roll.material_type == material_type)
    ]
    eligible_orders = [order for order in orders if not order.is_fulfilled]
    return CandidateSet(rolls=eligible_rolls, orders=eligible_orders)


class SearchBudgetExceeded(Exception):
    """Prazo da busca exata esgotado"""


class SlitPlanner:
    """
    Planejador de cortes longitudinais de uma bobina
    """

    def __init__(self, constraints: Optional[CuttingConstraints] = None,
                 time_limit_ms: Optional[float] = None):
        """
        Inicializa o planejador

        Args:
            constraints: Parâmetros físicos (lâmina, refile, granularidade)
            time_limit_ms: Prazo da busca exata; ao estourar, usa o modo aproximado
        """
        self.constraints = constraints or CuttingConstraints()
        if self.constraints.trim_margin < 0 or self.constraints.kerf_width < 0:
            raise ValueError("Lâmina e refile não podem ser negativos")
        if time_limit_ms is not None and time_limit_ms < 0:
            raise ValueError("time_limit_ms deve ser positivo")
        self.time_limit_ms = time_limit_ms

    def plan(self, roll: Optional[RawMaterialRoll], orders: Sequence[Order],
             approximate: bool = False) -> PlanResult:
        """
        Calcula o melhor arranjo de pedidos para uma bobina

        Args:
            roll: Bobina escolhida (None quando o filtro não encontrou nenhuma)
            orders: Pedidos elegíveis
            approximate: Usa best-fit decrescente em vez da busca exata

        Returns:
            Resultado com o plano ou com o motivo da falha
        """
        start_time = time.time()

        if roll is None:
            return self._failure(
                ErrorKind.NO_CANDIDATE_ROLL,
                "Nenhuma bobina disponível para o material solicitado",
                start_time,
            )

        pending = [order for order in orders if not order.is_fulfilled]
        usable = self.constraints.usable_width(roll.width)

        if not pending or usable <= 0:
            return self._failure(
                ErrorKind.NO_FEASIBLE_PLAN,
                f"Nenhum pedido cabe na bobina {roll.batch_number} (largura útil {usable:.1f}mm)",
                start_time,
                roll_id=roll.id,
            )

        selected, algorithm, exact = self._search(pending, usable, approximate)

        if not selected:
            narrowest = min(order.required_width for order in pending)
            return self._failure(
                ErrorKind.NO_FEASIBLE_PLAN,
                f"Nenhum pedido cabe na bobina {roll.batch_number}: "
                f"menor pedido {narrowest:.1f}mm, largura útil {usable:.1f}mm",
                start_time,
                roll_id=roll.id,
            )

        plan = self._build_plan(roll, selected, algorithm, exact)
        logger.info(
            "Plano para %s: %d pedidos, usado %.1fmm, sobra %.1fmm, eficiência %.1f%% (%s)",
            roll.batch_number, len(plan.cuts), plan.used_width, plan.waste_width,
            plan.efficiency, algorithm,
        )

        return PlanResult(
            success=True,
            plan=plan,
            message=f"{len(plan.cuts)} pedidos planejados na bobina {roll.batch_number}",
            processing_time=(time.time() - start_time) * 1000,
            metadata={"algorithm": algorithm, "exact": exact},
        )

    def plan_best(self, rolls: Sequence[RawMaterialRoll], orders: Sequence[Order],
                  material_type: Optional[str] = None, approximate: bool = False) -> PlanResult:
        """
        Planeja cada bobina candidata e devolve o plano de maior aproveitamento

        Empate: menor sobra, depois a bobina que entrou primeiro no estoque.
        """
        start_time = time.time()
        candidates = select_candidates(rolls, orders, material_type)

        if not candidates.rolls:
            return self._failure(
                ErrorKind.NO_CANDIDATE_ROLL,
                "Nenhuma bobina disponível para o material solicitado"
                if material_type is None else
                f"Nenhuma bobina disponível do material {material_type}",
                start_time,
            )

        best = None
        last_failure = None
        for roll in candidates.rolls:
            result = self.plan(roll, candidates.orders, approximate=approximate)
            if not result.success:
                last_failure = result
                continue
            if best is None or self._rank(result.plan) < self._rank(best.plan):
                best = result

        if best is None:
            last_failure.processing_time = (time.time() - start_time) * 1000
            last_failure.metadata["rolls_tried"] = len(candidates.rolls)
            return last_failure

        best.processing_time = (time.time() - start_time) * 1000
        best.metadata["rolls_tried"] = len(candidates.rolls)
        return best

    @staticmethod
    def _rank(plan: OptimizationPlan) -> Tuple[float, float, float]:
        return (-plan.efficiency, plan.waste_width, plan.selected_roll.entry_date.timestamp())

    def _failure(self, error: ErrorKind, message: str, start_time: float, **metadata) -> PlanResult:
        logger.info("Planejamento sem resultado (%s): %s", error.value, message)
        return PlanResult(
            success=False,
            error=error,
            message=message,
            processing_time=(time.time() - start_time) * 1000,
            metadata=metadata,
        )

    def _search(self, orders: List[Order], usable: float,
                approximate: bool) -> Tuple[List[Order], str, bool]:
        """Escolhe o subconjunto de pedidos e informa o algoritmo usado"""
        if approximate:
            return self._best_fit_decreasing(orders, usable), APPROXIMATE_ALGORITHM, False

        deadline = None
        if self.time_limit_ms is not None:
            deadline = time.perf_counter() + self.time_limit_ms / 1000

        try:
            selected, exact = self._exact_subset(orders, usable, deadline)
            return selected, EXACT_ALGORITHM, exact
        except SearchBudgetExceeded:
            logger.warning(
                "Busca exata excedeu %.0fms com %d pedidos; usando %s",
                self.time_limit_ms, len(orders), APPROXIMATE_ALGORITHM,
            )
            return self._best_fit_decreasing(orders, usable), APPROXIMATE_ALGORITHM, False

    def _consumed_width(self, orders: Sequence[Order]) -> float:
        """Largura física consumida: tiras mais uma lâmina entre cada par vizinho"""
        if not orders:
            return 0.0
        return sum(order.required_width for order in orders) + self.constraints.kerf_width * (len(orders) - 1)

    def _exact_subset(self, orders: List[Order], usable: float,
                      deadline: Optional[float] = None) -> Tuple[List[Order], bool]:
        """
        Subset-sum 0/1 por programação dinâmica sobre larguras inteiras

        Cada pedido pesa (largura + lâmina) e a capacidade é (útil + lâmina),
        assim a lâmina é cobrada apenas entre tiras vizinhas. Os pedidos são
        processados em ordem de entrega: a data mais cedo de um subconjunto é
        sempre a do primeiro pedido incluído, o que mantém o desempate exato
        guardando um único representante por soma.

        A grade é refinada até representar todas as larguras sem arredondar.
        Se nem MAX_GRID_DECIMALS casas bastarem, os pesos são arredondados para
        cima e a capacidade para baixo: o plano continua viável, mas deixa de
        ser garantidamente ótimo e volta com exact=False.
        """
        kerf = self.constraints.kerf_width
        weights = [order.required_width + kerf for order in orders]
        step, exact = self._grid_step(weights + [usable + kerf])

        capacity = int(math.floor((usable + kerf) / step + WIDTH_TOLERANCE))
        if capacity <= 0:
            return [], exact

        ordered = sorted(enumerate(orders), key=lambda item: (item[1].due_date, item[0]))
        units = [max(1, int(math.ceil(weights[index] / step - WIDTH_TOLERANCE))) for index, _ in ordered]

        logger.debug("Busca exata: %d pedidos, capacidade %d unidades de %gmm%s",
                     len(ordered), capacity, step, "" if exact else " (arredondada)")

        # best[s] = (data mais cedo, -quantidade, índices) do melhor subconjunto com soma s
        best: List[Optional[Tuple[int, int, Tuple[int, ...]]]] = [None] * (capacity + 1)
        best[0] = (0, 0, ())

        for i, (_, order) in enumerate(ordered):
            if deadline is not None and time.perf_counter() > deadline:
                raise SearchBudgetExceeded()

            weight = units[i]
            if weight > capacity:
                continue
            due = order.due_date.toordinal()
            previous = list(best)
            for s in range(capacity - weight, -1, -1):
                state = previous[s]
                if state is None:
                    continue
                first_due = state[0] if state[2] else due
                candidate = (first_due, state[1] - 1, state[2] + (i,))
                current = best[s + weight]
                if current is None or candidate[:2] < current[:2]:
                    best[s + weight] = candidate

        for s in range(capacity, 0, -1):
            state = best[s]
            if state is None:
                continue
            chosen = [ordered[i][1] for i in state[2]]
            if self._consumed_width(chosen) <= usable + WIDTH_TOLERANCE:
                return chosen, exact
        return [], exact

    def _grid_step(self, values: Sequence[float]) -> Tuple[float, bool]:
        """Passo da grade e se ele representa todos os valores sem arredondar"""
        step = self.constraints.grid
        if all(_is_multiple(value, step) for value in values):
            return step, True
        places = min(max(_decimal_places(value) for value in values), MAX_GRID_DECIMALS)
        step = min(step, 10.0 ** -places)
        return step, all(_is_multiple(value, step) for value in values)

    def _best_fit_decreasing(self, orders: List[Order], usable: float) -> List[Order]:
        """Modo aproximado: encaixa os pedidos mais largos primeiro"""
        kerf = self.constraints.kerf_width
        ranked = sorted(orders, key=lambda order: (-order.required_width, order.due_date))

        chosen = []
        consumed = 0.0
        for order in ranked:
            extra = order.required_width + (kerf if chosen else 0.0)
            if consumed + extra <= usable + WIDTH_TOLERANCE:
                chosen.append(order)
                consumed += extra

        chosen.sort(key=lambda order: order.due_date)
        return chosen

    def _build_plan(self, roll: RawMaterialRoll, selected: List[Order],
                    algorithm: str, exact: bool) -> OptimizationPlan:
        """Posiciona as tiras da esquerda para a direita e calcula as métricas"""
        kerf = self.constraints.kerf_width
        trim = self.constraints.trim_margin
        usable = self.constraints.usable_width(roll.width)

        cursor = trim
        blade_positions = [cursor]
        strips = []
        for index, order in enumerate(selected):
            strips.append(StripCut(
                order_id=order.id,
                customer_name=order.customer_name,
                position_x=cursor,
                width=order.required_width,
                sequence=index + 1,
            ))
            cursor += order.required_width
            blade_positions.append(cursor)
            if index < len(selected) - 1:
                cursor += kerf

        used_width = self._consumed_width(selected)
        waste_width = usable - used_width
        efficiency = min(100.0, used_width / roll.width * 100)

        return OptimizationPlan(
            roll_id=roll.id,
            selected_roll=roll,
            cuts=list(selected),
            strips=strips,
            blade_positions=blade_positions,
            waste_width=waste_width,
            used_width=used_width,
            usable_width=usable,
            efficiency=efficiency,
            kerf_width=kerf,
            trim_margin=trim,
            algorithm_used=algorithm,
            exact=exact,
        )


def _is_multiple(value: float, step: float) -> bool:
    quotient = value / step
    return abs(quotient - round(quotient)) <= WIDTH_TOLERANCE


def _decimal_places(value: float) -> int:
    exponent = Decimal(repr(value)).normalize().as_tuple().exponent
    return max(0, -exponent)
