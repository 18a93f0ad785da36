"""
Dados de exemplo para demonstração e para popular um armazenamento vazio
"""

from datetime import date, datetime
from typing import List, Tuple

from .models import Order, RawMaterialRoll


def sample_inventory() -> List[RawMaterialRoll]:
    return [
        RawMaterialRoll(id="RM-001", batch_number="BATCH-X99", width=1200, weight=500,
                        material_type="PVC-A", entry_date=datetime(2023, 10, 1)),
        RawMaterialRoll(id="RM-002", batch_number="BATCH-X99-OFF", width=350, weight=45,
                        material_type="PVC-A", is_remnant=True, entry_date=datetime(2023, 10, 5)),
        RawMaterialRoll(id="RM-003", batch_number="BATCH-Y01", width=1000, weight=400,
                        material_type="ALU-FOIL", entry_date=datetime(2023, 10, 10)),
        RawMaterialRoll(id="RM-004", batch_number="BATCH-Z22", width=1250, weight=550,
                        material_type="PVC-B", entry_date=datetime(2023, 10, 12)),
    ]


def sample_orders() -> List[Order]:
    return [
        Order(id="ORD-101", customer_name="PharmaCorp", required_width=220, target_weight=100,
              due_date=date(2023, 11, 1)),
        Order(id="ORD-102", customer_name="MediLife", required_width=310, target_weight=50,
              due_date=date(2023, 11, 2)),
        Order(id="ORD-103", customer_name="HealthPlus", required_width=150, target_weight=200,
              due_date=date(2023, 11, 5)),
        Order(id="ORD-104", customer_name="BioGen", required_width=220, target_weight=80,
              due_date=date(2023, 11, 6)),
        Order(id="ORD-105", customer_name="PharmaCorp", required_width=400, target_weight=150,
              due_date=date(2023, 11, 7)),
    ]


def create_sample_data() -> Tuple[List[RawMaterialRoll], List[Order]]:
    """Cria dados de exemplo para demonstração"""
    return sample_inventory(), sample_orders()
