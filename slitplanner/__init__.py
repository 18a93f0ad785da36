"""
SlitPlanner - Sistema de Planejamento de Corte Longitudinal de Bobinas

Escolhe quais pedidos cortar de uma bobina mestre para maximizar o
aproveitamento de largura, respeitando lâmina e refile, e aplica o plano
aceito ao estoque e à carteira de pedidos.
"""

from .core import SlitPlanner, select_candidates
from .executor import PlanExecutor
from .models import (
    CuttingConstraints, RawMaterialRoll, Order, StripCut, OptimizationPlan,
    CandidateSet, PlanResult, ExecutionResult, ErrorKind
)

__version__ = "1.0.0"
__author__ = "SlitPlanner Team"

__all__ = [
    "SlitPlanner",
    "select_candidates",
    "PlanExecutor",
    "CuttingConstraints",
    "RawMaterialRoll",
    "Order",
    "StripCut",
    "OptimizationPlan",
    "CandidateSet",
    "PlanResult",
    "ExecutionResult",
    "ErrorKind"
]
