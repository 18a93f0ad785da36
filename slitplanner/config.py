"""
Configuração do SlitPlanner

Os valores padrão vêm do chão de fábrica de referência e podem ser
sobrescritos por variáveis de ambiente com prefixo SLITPLANNER_.
"""

import os
from typing import Optional, Mapping

from pydantic import BaseModel, Field

from .models import CuttingConstraints

ENV_PREFIX = "SLITPLANNER_"

DEFAULT_KERF_WIDTH = 2.0        # mm
DEFAULT_TRIM_MARGIN = 10.0      # mm por lado (20mm por bobina)
DEFAULT_REMNANT_THRESHOLD = 100.0
DEFAULT_GRID = 1.0

# Chaves de persistência, uma por tipo de registro
ROLLS_KEY = "slitplanner.rolls.v1"
ORDERS_KEY = "slitplanner.orders.v1"
THEME_KEY = "slitplanner.theme.v1"


class Settings(BaseModel):
    """Configuração da aplicação"""
    kerf_width: float = Field(DEFAULT_KERF_WIDTH, ge=0)
    trim_margin: float = Field(DEFAULT_TRIM_MARGIN, ge=0)
    remnant_threshold: float = Field(DEFAULT_REMNANT_THRESHOLD, ge=0)
    grid: float = Field(DEFAULT_GRID, gt=0)
    time_limit_ms: Optional[float] = Field(None, gt=0, description="Prazo da busca exata")
    data_dir: Optional[str] = Field(None, description="Diretório do armazenamento em JSON")
    log_level: str = Field("INFO")

    @property
    def constraints(self) -> CuttingConstraints:
        return CuttingConstraints(
            kerf_width=self.kerf_width,
            trim_margin=self.trim_margin,
            remnant_threshold=self.remnant_threshold,
            grid=self.grid,
        )


def load_settings(environ: Optional[Mapping[str, str]] = None) -> Settings:
    """
    Carrega a configuração a partir das variáveis de ambiente

    Args:
        environ: Mapeamento alternativo ao os.environ (útil em testes)

    Returns:
        Configuração validada
    """
    env = os.environ if environ is None else environ
    values = {}
    for name in Settings.model_fields:
        raw = env.get(ENV_PREFIX + name.upper())
        if raw is not None and raw.strip() != "":
            values[name] = raw.strip()
    return Settings(**values)
