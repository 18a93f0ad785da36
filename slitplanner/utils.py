"""
Utilitários para visualização e relatórios do SlitPlanner
"""

import json
from typing import List, Optional
from pathlib import Path

import matplotlib.pyplot as plt
from matplotlib.patches import Rectangle
import numpy as np
import pandas as pd

from .models import OptimizationPlan, ExecutionResult


def confirmation_prompt(plan: OptimizationPlan, remnant_threshold: float = 100.0) -> str:
    """
    Texto para o operador confirmar a execução de um plano

    Args:
        plan: Plano a executar
        remnant_threshold: Largura acima da qual a sobra vira retalho
    """
    roll = plan.selected_roll
    lines = [
        "Confirmar a execução da produção? Isto irá:",
        f"1. Marcar {len(plan.cuts)} pedidos como atendidos: "
        + ", ".join(f"{o.id} ({o.customer_name}, {o.required_width:g}mm)" for o in plan.cuts),
        f"2. Remover a bobina {roll.batch_number} ({roll.width:g}mm, {roll.weight:g}kg) do estoque",
    ]
    if plan.waste_width > remnant_threshold:
        weight = round(roll.weight * (plan.waste_width / roll.width), 2)
        lines.append(f"3. Criar o retalho {roll.batch_number}-REM ({plan.waste_width:.1f}mm, {weight:.2f}kg)")
    else:
        lines.append(f"3. Descartar {plan.waste_width:.1f}mm como sucata")
    return "\n".join(lines)


class PlanVisualizer:
    """Classe para visualização de um plano de corte"""

    def __init__(self, plan: OptimizationPlan):
        """
        Inicializa o visualizador

        Args:
            plan: Plano de corte
        """
        self.plan = plan
        self.colors = plt.cm.Set3(np.linspace(0, 1, 12))

    def plot_roll(self, save_path: Optional[str] = None, show: bool = False) -> None:
        """Plota a bobina vista de cima com tiras, facas, refile e sobra"""
        plan = self.plan
        roll_width = plan.selected_roll.width

        fig, ax = plt.subplots(figsize=(12, 3))
        ax.set_xlim(0, roll_width)
        ax.set_ylim(0, 1)
        ax.set_yticks([])
        ax.set_xlabel("Posição (mm)")
        ax.set_title(f"{plan.selected_roll.batch_number} - Eficiência: {plan.efficiency:.1f}%")

        # Refile nas duas bordas
        ax.axvspan(0, plan.trim_margin, color="gray", alpha=0.5)
        ax.axvspan(roll_width - plan.trim_margin, roll_width, color="gray", alpha=0.5)

        for i, strip in enumerate(plan.strips):
            color = self.colors[i % len(self.colors)]
            ax.add_patch(Rectangle((strip.position_x, 0.1), strip.width, 0.8,
                                   facecolor=color, edgecolor="black", linewidth=1))
            ax.text(strip.position_x + strip.width / 2, 0.5,
                    f"{strip.customer_name}\n{strip.width:g}mm",
                    ha="center", va="center", fontsize=8)

        for position in plan.blade_positions:
            ax.axvline(x=position, color="red", linestyle="--", linewidth=1.5, alpha=0.7)

        if plan.waste_width > 0:
            waste_start = plan.trim_margin + plan.used_width
            ax.axvspan(waste_start, waste_start + plan.waste_width, alpha=0.3, color="red",
                       label=f"Sobra: {plan.waste_width:.1f}mm")
            ax.legend(loc="upper right")

        plt.tight_layout()

        if save_path:
            plt.savefig(save_path, dpi=150, bbox_inches="tight")

        if show:
            plt.show()
        plt.close(fig)


class PlanReporter:
    """Classe para geração de relatórios de um plano"""

    def __init__(self, plan: OptimizationPlan, execution: Optional[ExecutionResult] = None):
        """
        Inicializa o gerador de relatórios

        Args:
            plan: Plano de corte
            execution: Resultado da execução, se o plano já foi aplicado
        """
        self.plan = plan
        self.execution = execution

    def to_dataframe(self) -> pd.DataFrame:
        """Tabela das tiras do plano"""
        orders = {order.id: order for order in self.plan.cuts}
        rows = [{
            "Sequência": strip.sequence,
            "Pedido": strip.order_id,
            "Cliente": strip.customer_name,
            "Largura": strip.width,
            "Início": strip.position_x,
            "Fim": strip.end_x,
            "Entrega": orders[strip.order_id].due_date.isoformat(),
        } for strip in self.plan.strips]
        return pd.DataFrame(rows, columns=["Sequência", "Pedido", "Cliente", "Largura",
                                           "Início", "Fim", "Entrega"])

    def generate_text_report(self) -> str:
        """Gera relatório em formato texto"""
        plan = self.plan
        roll = plan.selected_roll
        report = []
        report.append("=" * 60)
        report.append("RELATÓRIO DE PLANO DE CORTE")
        report.append("=" * 60)
        report.append("")

        report.append("BOBINA:")
        report.append(f"  • Lote: {roll.batch_number} ({roll.material_type})")
        report.append(f"  • Largura: {roll.width:.1f} mm | Peso: {roll.weight:.2f} kg")
        report.append(f"  • Largura útil: {plan.usable_width:.1f} mm (refile {plan.trim_margin:g} mm por lado)")
        report.append("")

        report.append("RESUMO:")
        report.append(f"  • Eficiência: {plan.efficiency:.1f}%")
        report.append(f"  • Largura usada: {plan.used_width:.1f} mm")
        report.append(f"  • Sobra: {plan.waste_width:.1f} mm")
        report.append(f"  • Algoritmo: {plan.algorithm_used}{'' if plan.exact else ' (aproximado)'}")
        report.append("")

        report.append("TIRAS:")
        report.append("-" * 40)
        for strip in plan.strips:
            report.append(f"  {strip.sequence}. {strip.customer_name} [{strip.order_id}]: "
                          f"{strip.width:g}mm (pos: {strip.position_x:g}mm)")

        report.append("\nPOSIÇÕES DAS FACAS:")
        report.append("-" * 25)
        report.append("  " + ", ".join(f"{p:g}mm" for p in plan.blade_positions))

        if self.execution is not None:
            report.append("\nEXECUÇÃO:")
            report.append("-" * 25)
            for line in self.execution.message.splitlines():
                report.append(f"  {line}")

        report.append("\n" + "=" * 60)
        return "\n".join(report)

    def generate_csv_report(self, file_path: str) -> None:
        """Gera relatório das tiras em formato CSV"""
        self.to_dataframe().to_csv(file_path, index=False, encoding="utf-8")

    def generate_json_report(self, file_path: str) -> None:
        """Gera relatório em formato JSON"""
        report_data = {"plan": self.plan.model_dump(mode="json")}
        if self.execution is not None:
            report_data["execution"] = self.execution.model_dump(
                mode="json", include={"success", "message", "orders_fulfilled", "remnant"})

        with open(file_path, "w", encoding="utf-8") as f:
            json.dump(report_data, f, indent=2, ensure_ascii=False)

    def generate_html_report(self, file_path: Optional[str] = None) -> str:
        """Gera relatório em formato HTML"""
        plan = self.plan
        table = self.to_dataframe().to_html(index=False, border=0, classes="strips")
        blades = ", ".join(f"{p:g}" for p in plan.blade_positions)
        generated_at = pd.Timestamp.now().strftime("%d/%m/%Y %H:%M:%S")
        html = f"""
        <!DOCTYPE html>
        <html lang="pt-BR">
        <head>
            <meta charset="UTF-8">
            <title>Plano de Corte - {plan.selected_roll.batch_number}</title>
            <style>
                body {{ font-family: Arial, sans-serif; margin: 20px; }}
                .summary {{ background-color: #ecf0f1; padding: 15px; border-radius: 5px; }}
                table.strips {{ border-collapse: collapse; margin-top: 20px; }}
                table.strips td, table.strips th {{ padding: 6px 12px; border-bottom: 1px solid #ddd; }}
            </style>
        </head>
        <body>
            <h1>Plano de Corte - {plan.selected_roll.batch_number}</h1>
            <div class="summary">
                <p><strong>Eficiência:</strong> {plan.efficiency:.1f}%</p>
                <p><strong>Largura usada:</strong> {plan.used_width:.1f}mm |
                   <strong>Sobra:</strong> {plan.waste_width:.1f}mm</p>
                <p><strong>Facas:</strong> {blades}</p>
            </div>
            {table}
            <p style="color: #7f8c8d;">Gerado em {generated_at}</p>
        </body>
        </html>
        """

        if file_path:
            with open(file_path, "w", encoding="utf-8") as f:
                f.write(html)

        return html


def export_plan(plan: OptimizationPlan, output_dir: str, formats: List[str] = None,
                execution: Optional[ExecutionResult] = None) -> List[Path]:
    """
    Exporta o plano em múltiplos formatos

    Args:
        plan: Plano de corte
        output_dir: Diretório de saída
        formats: Lista de formatos (txt, csv, json, html)
        execution: Resultado da execução, se houver

    Returns:
        Arquivos gerados
    """
    if formats is None:
        formats = ["txt", "csv", "json", "html"]

    Path(output_dir).mkdir(parents=True, exist_ok=True)

    reporter = PlanReporter(plan, execution)
    base_path = Path(output_dir) / f"plano_{plan.selected_roll.batch_number}"
    created = []

    if "txt" in formats:
        path = Path(f"{base_path}.txt")
        path.write_text(reporter.generate_text_report(), encoding="utf-8")
        created.append(path)

    if "csv" in formats:
        path = Path(f"{base_path}.csv")
        reporter.generate_csv_report(str(path))
        created.append(path)

    if "json" in formats:
        path = Path(f"{base_path}.json")
        reporter.generate_json_report(str(path))
        created.append(path)

    if "html" in formats:
        path = Path(f"{base_path}.html")
        reporter.generate_html_report(str(path))
        created.append(path)

    return created


def create_visualization(plan: OptimizationPlan, output_dir: str, show: bool = False) -> Path:
    """
    Cria a visualização do plano

    Args:
        plan: Plano de corte
        output_dir: Diretório de saída
        show: Se deve mostrar o gráfico
    """
    Path(output_dir).mkdir(parents=True, exist_ok=True)
    path = Path(output_dir) / f"visualizacao_{plan.selected_roll.batch_number}.png"
    PlanVisualizer(plan).plot_roll(str(path), show=show)
    return path
