"""
Servidor FastAPI principal para o SlitPlanner
"""

import tempfile
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
import uvicorn

from slitplanner import __version__
from slitplanner.models import (
    ErrorKind, ExecuteRequest, Order, OptimizationPlan, PlanRequest,
    RawMaterialRoll, RollUpdate, ThemeMode
)
from slitplanner.sample_data import sample_inventory, sample_orders
from slitplanner.service import build_service
from slitplanner.utils import PlanReporter, confirmation_prompt

# Configuração do FastAPI
app = FastAPI(
    title="SlitPlanner API",
    description="API para planejamento de corte longitudinal de bobinas",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc"
)

# Configuração de CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Instância global do serviço (dona do estoque e da carteira)
service = build_service()

PLAN_ERROR_STATUS = {
    ErrorKind.NO_CANDIDATE_ROLL: 404,
    ErrorKind.NO_FEASIBLE_PLAN: 422,
}


@app.get("/")
async def root():
    """Página inicial da API"""
    return {
        "message": "SlitPlanner API",
        "version": __version__,
        "docs": "/docs",
        "health": "/health"
    }


@app.get("/health")
async def health_check():
    """Verificação de saúde da API"""
    return {
        "status": "healthy",
        "service": "SlitPlanner API",
        "version": __version__
    }


@app.get("/inventory")
def list_inventory(q: str = "", material_type: Optional[str] = None):
    """Lista o estoque, com busca por largura, peso ou lote"""
    return service.inventory.search(q, material_type)


@app.post("/inventory", status_code=201)
def add_roll(roll: RawMaterialRoll):
    """Cadastra uma bobina"""
    try:
        saved = service.add_roll(roll)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"roll": roll, "persisted": saved}


@app.patch("/inventory/{roll_id}")
def update_roll(roll_id: str, changes: RollUpdate):
    """Edita largura e/ou peso de uma bobina"""
    updated = service.update_roll(roll_id, changes)
    if updated is None:
        raise HTTPException(status_code=404, detail=f"Bobina {roll_id} não encontrada")
    return updated


@app.delete("/inventory/{roll_id}")
def delete_roll(roll_id: str):
    """Remove uma bobina do estoque"""
    try:
        saved = service.delete_roll(roll_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Bobina {roll_id} não encontrada")
    return {"deleted": roll_id, "persisted": saved}


@app.get("/orders")
def list_orders(pending_only: bool = False):
    """Lista os pedidos"""
    return service.orders.pending() if pending_only else service.orders.list()


@app.post("/orders", status_code=201)
def add_order(order: Order):
    """Cadastra um pedido"""
    try:
        saved = service.add_order(order)
    except ValueError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {"order": order, "persisted": saved}


@app.delete("/orders/{order_id}")
def delete_order(order_id: str):
    """Remove um pedido"""
    try:
        saved = service.delete_order(order_id)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"Pedido {order_id} não encontrado")
    return {"deleted": order_id, "persisted": saved}


@app.post("/plan")
def create_plan(request: PlanRequest):
    """
    Calcula o plano de corte

    Args:
        request: Bobina (opcional), tipo de material e modo de busca

    Returns:
        Plano e texto de confirmação para o operador
    """
    result = service.plan(request)

    if not result.success:
        raise HTTPException(
            status_code=PLAN_ERROR_STATUS.get(result.error, 500),
            detail={"error": result.error.value, "message": result.message}
        )

    return {
        "result": result,
        "confirmation": confirmation_prompt(result.plan, service.settings.remnant_threshold)
    }


@app.post("/execute")
def execute_plan(request: ExecuteRequest):
    """
    Executa um plano confirmado pelo operador

    Sem confirmação explícita nada é alterado.
    """
    if not request.confirmed:
        raise HTTPException(
            status_code=428,
            detail={
                "error": "confirmation_required",
                "message": confirmation_prompt(request.plan, service.settings.remnant_threshold)
            }
        )

    result = service.execute(request.plan)

    if not result.success:
        raise HTTPException(
            status_code=409,
            detail={"error": result.error.value, "message": result.message}
        )

    return {
        "success": True,
        "message": result.message,
        "orders_fulfilled": result.orders_fulfilled,
        "roll_consumed": result.roll_consumed,
        "remnant_created": result.remnant_created,
        "remnant": result.remnant,
        "persisted": result.persisted
    }


@app.get("/dashboard")
def dashboard():
    """Resumo do estoque e da carteira"""
    return service.dashboard()


@app.get("/preferences/theme")
def get_theme():
    return {"theme": service.preferences.get_theme()}


@app.put("/preferences/theme")
def set_theme(theme: ThemeMode):
    saved = service.preferences.set_theme(theme)
    return {"theme": theme, "persisted": saved}


@app.post("/report/generate")
def generate_report(plan: OptimizationPlan, format: str = "all"):
    """
    Gera relatórios de um plano em diferentes formatos

    Args:
        plan: Plano de corte
        format: Formato do relatório (txt, csv, json, html, all)
    """
    formats = ["txt", "csv", "json", "html"] if format == "all" else [format]
    unknown = set(formats) - {"txt", "csv", "json", "html"}
    if unknown:
        raise HTTPException(status_code=400, detail=f"Formato desconhecido: {', '.join(sorted(unknown))}")

    reporter = PlanReporter(plan)
    results = {}

    if "txt" in formats:
        results["txt"] = reporter.generate_text_report()

    if "json" in formats:
        results["json"] = plan.model_dump(mode="json")

    if "csv" in formats:
        with tempfile.TemporaryDirectory() as temp_dir:
            path = Path(temp_dir) / "report.csv"
            reporter.generate_csv_report(str(path))
            results["csv"] = path.read_text(encoding="utf-8")

    if "html" in formats:
        results["html"] = reporter.generate_html_report()

    return {
        "formats_generated": formats,
        "results": results
    }


@app.get("/examples")
async def get_examples():
    """Retorna dados de exemplo de estoque e pedidos"""
    return {
        "inventory": sample_inventory(),
        "orders": sample_orders()
    }


@app.get("/stats")
async def get_stats():
    """Retorna estatísticas do sistema"""
    return {
        "service": "SlitPlanner API",
        "version": __version__,
        "status": "running",
        "algorithms_supported": ["exact_dp", "best_fit_decreasing"],
        "constraints": service.settings.constraints
    }


if __name__ == "__main__":
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
        log_level="info"
    )
