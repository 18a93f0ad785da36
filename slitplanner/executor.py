"""
Aplicação de um plano de corte ao estoque e à carteira de pedidos
"""

import logging
from datetime import datetime
from typing import Callable, Optional, Sequence

from .core import WIDTH_TOLERANCE
from .models import (
    CuttingConstraints, ErrorKind, ExecutionResult, Order,
    OptimizationPlan, RawMaterialRoll, new_id
)

logger = logging.getLogger(__name__)


class PlanExecutor:
    """
    Executa um plano aceito como uma única transação lógica

    Nada é alterado nas coleções recebidas: o resultado traz cópias novas do
    estoque e dos pedidos. Cabe a quem chama obter a confirmação do operador
    antes de executar e gravar as cópias devolvidas.
    """

    def __init__(self, constraints: Optional[CuttingConstraints] = None,
                 clock: Callable[[], datetime] = datetime.now,
                 id_factory: Callable[[], str] = new_id):
        self.constraints = constraints or CuttingConstraints()
        self.clock = clock
        self.id_factory = id_factory

    def execute(self, plan: OptimizationPlan, rolls: Sequence[RawMaterialRoll],
                orders: Sequence[Order]) -> ExecutionResult:
        """
        Aplica o plano

        Args:
            plan: Plano aceito pelo operador
            rolls: Estoque atual
            orders: Pedidos atuais

        Returns:
            Resultado com o novo estado, ou conflito sem nenhuma alteração
        """
        source = next((roll for roll in rolls if roll.id == plan.roll_id), None)
        if source is None:
            logger.warning("Bobina %s não está mais no estoque; plano descartado", plan.roll_id)
            return ExecutionResult(
                success=False,
                error=ErrorKind.EXECUTION_CONFLICT,
                message=f"A bobina {plan.selected_roll.batch_number} não está mais disponível no estoque",
                inventory=list(rolls),
                orders=list(orders),
            )

        if _changed_since_planning(source, plan.selected_roll):
            logger.warning("Bobina %s foi alterada depois do planejamento; plano descartado", plan.roll_id)
            return ExecutionResult(
                success=False,
                error=ErrorKind.EXECUTION_CONFLICT,
                message=(
                    f"A bobina {source.batch_number} foi alterada depois do planejamento "
                    f"({source.width:g}mm, {source.weight:g}kg, {source.material_type}); "
                    "gere um novo plano"
                ),
                inventory=list(rolls),
                orders=list(orders),
            )

        fulfilled_ids = set(plan.order_ids)
        missing = fulfilled_ids - {order.id for order in orders}
        if missing:
            logger.warning("Pedidos do plano ausentes da carteira: %s", ", ".join(sorted(missing)))

        new_orders = [
            order.model_copy(update={"is_fulfilled": True}) if order.id in fulfilled_ids else order
            for order in orders
        ]
        new_inventory = [roll for roll in rolls if roll.id != plan.roll_id]

        remnant = self._make_remnant(plan.selected_roll, plan.waste_width)
        if remnant is not None:
            new_inventory.append(remnant)

        done = [order.id for order in orders if order.id in fulfilled_ids]
        result = ExecutionResult(
            success=True,
            orders_fulfilled=done,
            roll_consumed=source,
            remnant=remnant,
            inventory=new_inventory,
            orders=new_orders,
        )
        result.message = summarize_execution(result)
        logger.info(result.message.replace("\n", " "))
        return result

    def _make_remnant(self, source: RawMaterialRoll, waste_width: float) -> Optional[RawMaterialRoll]:
        """Cria o retalho quando a sobra passa do limite; abaixo disso é sucata"""
        if waste_width <= self.constraints.remnant_threshold:
            return None
        weight = round(source.weight * (waste_width / source.width), 2)
        if weight <= 0:
            logger.info("Sobra de %.1fmm da bobina %s pesa menos de 0.01kg; tratada como sucata",
                        waste_width, source.batch_number)
            return None
        return RawMaterialRoll(
            id=self.id_factory(),
            batch_number=f"{source.batch_number}-REM",
            width=waste_width,
            weight=weight,
            material_type=source.material_type,
            is_remnant=True,
            entry_date=self.clock(),
        )


def _changed_since_planning(current: RawMaterialRoll, planned: RawMaterialRoll) -> bool:
    return (
        current.material_type != planned.material_type
        or abs(current.width - planned.width) > WIDTH_TOLERANCE
        or abs(current.weight - planned.weight) > WIDTH_TOLERANCE
    )


def summarize_execution(result: ExecutionResult) -> str:
    """Mensagem de resultado para o operador"""
    if not result.success:
        return result.message
    lines = [
        f"{len(result.orders_fulfilled)} pedidos marcados como atendidos.",
        f"Bobina {result.roll_consumed.batch_number} removida do estoque.",
    ]
    if result.remnant is not None:
        lines.append(
            f"Retalho {result.remnant.batch_number} criado "
            f"({result.remnant.width:.1f}mm, {result.remnant.weight:.2f}kg)."
        )
    else:
        lines.append("Nenhum retalho criado.")
    return "\n".join(lines)

