#!/usr/bin/env python3
"""
Script principal para executar o sistema SlitPlanner
"""

import sys
import logging
import argparse
from pathlib import Path

from slitplanner.config import load_settings
from slitplanner.models import PlanRequest
from slitplanner.service import ProductionService
from slitplanner.storage import JsonFileStore, MemoryStore
from slitplanner.utils import confirmation_prompt, export_plan, create_visualization

logger = logging.getLogger("slitplanner.run")


def run_demo(material_type=None, approximate=False, execute=False, data_dir=None):
    """Executa demonstração do sistema"""

    print("SlitPlanner - Demonstração do Sistema")
    print("=" * 60)

    settings = load_settings()
    store = JsonFileStore(data_dir) if data_dir else MemoryStore()
    service = ProductionService(store, settings, seed=True)

    constraints = settings.constraints
    print(f"✓ Lâmina: {constraints.kerf_width}mm | Refile: {constraints.trim_margin}mm por lado")
    print(f"✓ {len(service.inventory.list())} bobinas em estoque")
    print(f"✓ {len(service.orders.pending())} pedidos pendentes")

    print("\nExecutando otimização...")
    result = service.plan(PlanRequest(material_type=material_type, approximate=approximate))

    if not result.success:
        print(f"❌ Nenhum plano: {result.message} ({result.error.value})")
        return None, None

    plan = result.plan
    print(f"\n✅ Plano para a bobina {plan.selected_roll.batch_number} ({plan.selected_roll.material_type})")
    print(f"📊 Eficiência: {plan.efficiency:.1f}%")
    print(f"📏 Usado: {plan.used_width:.1f}mm | Sobra: {plan.waste_width:.1f}mm")
    print(f"⚡ Tempo de processamento: {result.processing_time:.1f}ms")

    print("\n📋 Tiras:")
    for strip in plan.strips:
        print(f"  {strip.sequence}. {strip.customer_name}: {strip.width:g}mm em {strip.position_x:g}mm")
    print(f"  Facas: {', '.join(f'{p:g}' for p in plan.blade_positions)}")

    execution = None
    if execute:
        print("\n" + confirmation_prompt(plan, constraints.remnant_threshold))
        answer = input("\nConfirmar? [s/N] ").strip().lower()
        if answer in ("s", "sim", "y", "yes"):
            execution = service.execute(plan)
            print("\n" + execution.message)
        else:
            print("Execução cancelada pelo operador")

    return plan, execution


def run_api_server():
    """Inicia o servidor da API"""

    print("🚀 Iniciando servidor da API SlitPlanner...")

    try:
        import uvicorn

        print("✓ Servidor iniciado em http://localhost:8000")
        print("✓ Documentação da API: http://localhost:8000/docs")
        print("\nPressione Ctrl+C para parar o servidor")

        uvicorn.run(
            "main:app",
            host="0.0.0.0",
            port=8000,
            reload=True,
            log_level="info"
        )

    except ImportError as e:
        print(f"❌ Erro: {e}")
        print("Instale as dependências com: pip install -e .")


def run_tests():
    """Executa os testes do sistema"""

    print("🧪 Executando testes do SlitPlanner...")

    import unittest

    loader = unittest.TestLoader()
    start_dir = Path(__file__).parent / 'tests'
    suite = loader.discover(str(start_dir), pattern='test_*.py', top_level_dir=str(Path(__file__).parent))

    runner = unittest.TextTestRunner(verbosity=2)
    result = runner.run(suite)

    if result.wasSuccessful():
        print("\n✅ Todos os testes passaram!")
        return True
    print(f"\n❌ {len(result.failures) + len(result.errors)} testes falharam")
    return False


def main():
    """Função principal"""

    parser = argparse.ArgumentParser(
        description="SlitPlanner - Planejamento de Corte de Bobinas",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exemplos de uso:
  python run.py demo                          # Executa demonstração
  python run.py demo --material PVC-A         # Restringe o tipo de material
  python run.py demo --execute --data data    # Executa o plano e grava em ./data
  python run.py api                           # Inicia servidor da API
  python run.py test                          # Executa testes
  python run.py demo --export results         # Executa demo e exporta resultados
        """
    )

    parser.add_argument('command', choices=['demo', 'api', 'test'], help='Comando a executar')
    parser.add_argument('--material', metavar='TIPO', help='Tipo de material')
    parser.add_argument('--approximate', action='store_true', help='Usa o modo aproximado')
    parser.add_argument('--execute', action='store_true', help='Pede confirmação e executa o plano')
    parser.add_argument('--data', metavar='DIR', help='Diretório do armazenamento em JSON')
    parser.add_argument('--export', metavar='DIR', help='Diretório para exportar resultados')
    parser.add_argument('--visualization', action='store_true', help='Criar visualização do plano')
    parser.add_argument('--log-level', default=None, help='Nível de log (DEBUG, INFO, ...)')

    args = parser.parse_args()

    level = args.log_level or load_settings().log_level
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        if args.command == 'demo':
            plan, execution = run_demo(args.material, args.approximate, args.execute, args.data)

            if plan and args.export:
                print(f"\n📁 Exportando resultados para: {args.export}")
                export_plan(plan, args.export, execution=execution)

                if args.visualization:
                    print("🎨 Criando visualização...")
                    create_visualization(plan, args.export)

                print("✅ Exportação concluída!")

        elif args.command == 'api':
            run_api_server()

        elif args.command == 'test':
            success = run_tests()
            sys.exit(0 if success else 1)

    except KeyboardInterrupt:
        print("\n\n👋 Sistema interrompido pelo usuário")
    except Exception as e:
        logger.exception("Falha ao executar o comando %s", args.command)
        print(f"\n❌ Erro: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
