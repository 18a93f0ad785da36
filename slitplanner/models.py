"""
Modelos de dados para o sistema SlitPlanner
"""

import math
from datetime import date, datetime
from typing import List, Optional, Dict, Any
from uuid import uuid4
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


def new_id() -> str:
    """Gera um identificador único"""
    return str(uuid4())


class ErrorKind(str, Enum):
    """Motivos de falha reportados pelo planejador e pelo executor"""
    INVALID_INPUT = "invalid_input"
    NO_CANDIDATE_ROLL = "no_candidate_roll"
    NO_FEASIBLE_PLAN = "no_feasible_plan"
    EXECUTION_CONFLICT = "execution_conflict"
    PERSISTENCE_FAILURE = "persistence_failure"


class ThemeMode(str, Enum):
    LIGHT = "light"
    DARK = "dark"


class CuttingConstraints(BaseModel):
    """Parâmetros físicos compartilhados por todos os cálculos"""
    model_config = ConfigDict(frozen=True)

    kerf_width: float = Field(2.0, ge=0, allow_inf_nan=False, description="Espessura da lâmina (mm)")
    trim_margin: float = Field(10.0, ge=0, allow_inf_nan=False, description="Refile por lado (mm)")
    remnant_threshold: float = Field(100.0, ge=0, allow_inf_nan=False, description="Largura mínima de retalho (mm)")
    grid: float = Field(1.0, gt=0, allow_inf_nan=False, description="Granularidade da busca exata (mm)")

    def usable_width(self, roll_width: float) -> float:
        """Largura útil da bobina, descontado o refile dos dois lados"""
        return roll_width - 2 * self.trim_margin


class RawMaterialRoll(BaseModel):
    """Bobina mestre (ou retalho) disponível em estoque"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id, description="Identificador único da bobina")
    batch_number: str = Field(..., min_length=1, description="Lote")
    width: float = Field(..., gt=0, allow_inf_nan=False, description="Largura (mm)")
    weight: float = Field(..., gt=0, allow_inf_nan=False, description="Peso (kg)")
    material_type: str = Field(..., min_length=1, description="Tipo de material")
    is_remnant: bool = Field(False, description="Se a bobina é um retalho")
    entry_date: datetime = Field(default_factory=datetime.now, description="Data de entrada")

    @property
    def weight_per_mm(self) -> float:
        return self.weight / self.width


class Order(BaseModel):
    """Pedido de cliente por largura e peso"""
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id, description="Identificador único do pedido")
    customer_name: str = Field(..., min_length=1, description="Cliente")
    required_width: float = Field(..., gt=0, allow_inf_nan=False, description="Largura requerida (mm)")
    target_weight: float = Field(..., gt=0, allow_inf_nan=False, description="Peso alvo (kg)")
    is_fulfilled: bool = Field(False, description="Se o pedido já foi atendido")
    due_date: date = Field(..., description="Data de entrega")


class CandidateSet(BaseModel):
    """Bobinas e pedidos elegíveis para uma tentativa de planejamento"""
    model_config = ConfigDict(frozen=True)

    rolls: List[RawMaterialRoll] = Field(default_factory=list)
    orders: List[Order] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.rolls or not self.orders


class StripCut(BaseModel):
    """Representa uma tira posicionada na bobina"""
    order_id: str = Field(..., description="ID do pedido")
    customer_name: str = Field(..., description="Cliente")
    position_x: float = Field(..., description="Borda esquerda da tira (mm)")
    width: float = Field(..., description="Largura da tira (mm)")
    sequence: int = Field(..., description="Posição da tira da esquerda para a direita")

    @property
    def end_x(self) -> float:
        return self.position_x + self.width


class OptimizationPlan(BaseModel):
    """Plano de corte de uma bobina (efêmero até ser executado)"""
    roll_id: str = Field(..., description="ID da bobina de origem")
    selected_roll: RawMaterialRoll = Field(..., description="Cópia da bobina de origem")
    cuts: List[Order] = Field(..., description="Pedidos selecionados, da esquerda para a direita")
    strips: List[StripCut] = Field(default_factory=list, description="Tiras posicionadas")
    blade_positions: List[float] = Field(..., description="Posições das facas a partir da borda esquerda (mm)")
    waste_width: float = Field(..., description="Largura desperdiçada (mm)")
    used_width: float = Field(..., description="Largura consumida (mm)")
    usable_width: float = Field(..., description="Largura útil (mm)")
    efficiency: float = Field(..., ge=0, le=100, description="Aproveitamento percentual")
    kerf_width: float = Field(..., description="Espessura da lâmina usada no cálculo")
    trim_margin: float = Field(..., description="Refile usado no cálculo")
    algorithm_used: str = Field(..., description="Algoritmo utilizado")
    exact: bool = Field(True, description="Se o resultado é ótimo")

    @property
    def order_ids(self) -> List[str]:
        return [order.id for order in self.cuts]


class PlanResult(BaseModel):
    """Resultado de uma tentativa de planejamento"""
    success: bool = Field(..., description="Se um plano foi encontrado")
    plan: Optional[OptimizationPlan] = Field(None, description="Plano encontrado")
    error: Optional[ErrorKind] = Field(None, description="Motivo da falha")
    message: str = Field("", description="Descrição legível do resultado")
    processing_time: float = Field(0.0, description="Tempo de processamento (ms)")
    metadata: Dict[str, Any] = Field(default_factory=dict, description="Metadados adicionais")


class ExecutionResult(BaseModel):
    """Resultado da execução de um plano"""
    success: bool = Field(..., description="Se o plano foi aplicado")
    error: Optional[ErrorKind] = Field(None, description="Motivo da falha")
    message: str = Field("", description="Resumo legível")
    orders_fulfilled: List[str] = Field(default_factory=list, description="IDs dos pedidos atendidos")
    roll_consumed: Optional[RawMaterialRoll] = Field(None, description="Bobina consumida")
    remnant: Optional[RawMaterialRoll] = Field(None, description="Retalho criado")
    inventory: List[RawMaterialRoll] = Field(default_factory=list, description="Novo estoque")
    orders: List[Order] = Field(default_factory=list, description="Nova carteira de pedidos")
    persisted: bool = Field(True, description="Se o novo estado foi gravado")

    @property
    def remnant_created(self) -> bool:
        return self.remnant is not None


class PlanRequest(BaseModel):
    """Requisição de planejamento"""
    roll_id: Optional[str] = Field(None, description="Bobina específica; se ausente, escolhe a melhor")
    material_type: Optional[str] = Field(None, description="Restrição de tipo de material")
    approximate: bool = Field(False, description="Usar o modo aproximado (best-fit decrescente)")


class ExecuteRequest(BaseModel):
    """Requisição de execução de um plano confirmado pelo operador"""
    plan: OptimizationPlan
    confirmed: bool = Field(False, description="Confirmação explícita do operador")


class RollUpdate(BaseModel):
    """Edição de largura e peso de uma bobina"""
    width: Optional[float] = Field(None, gt=0, allow_inf_nan=False)
    weight: Optional[float] = Field(None, gt=0, allow_inf_nan=False)


class MaterialStock(BaseModel):
    material_type: str
    rolls: int
    total_width: float
    total_weight: float


class DashboardSummary(BaseModel):
    """Resumo da produção para o painel"""
    total_rolls: int
    remnant_rolls: int
    total_weight: float
    stock_by_material: List[MaterialStock] = Field(default_factory=list)
    pending_orders: int
    fulfilled_orders: int
    pending_width: float
    next_due_date: Optional[date] = None

    @field_validator("total_weight", "pending_width")
    @classmethod
    def round_totals(cls, v: float) -> float:
        return round(v, 2) if math.isfinite(v) else v
