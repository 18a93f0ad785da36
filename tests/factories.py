"""
Fábricas de dados para os testes
"""

from datetime import date, datetime

from slitplanner.models import Order, RawMaterialRoll


def make_roll(width=1200, weight=500, material_type="PVC-A", roll_id=None,
              batch_number="BATCH-X99", **kwargs):
    data = dict(batch_number=batch_number, width=width, weight=weight,
                material_type=material_type, entry_date=datetime(2023, 10, 1))
    if roll_id is not None:
        data["id"] = roll_id
    data.update(kwargs)
    return RawMaterialRoll(**data)


def make_order(width, day=1, order_id=None, customer="PharmaCorp", **kwargs):
    data = dict(customer_name=customer, required_width=width, target_weight=100,
                due_date=date(2023, 11, day))
    if order_id is not None:
        data["id"] = order_id
    data.update(kwargs)
    return Order(**data)


def scenario_a():
    """Bobina de 1200mm e quatro pedidos que cabem juntos"""
    roll = make_roll(roll_id="RM-001")
    orders = [
        make_order(220, day=1, order_id="ORD-101", customer="PharmaCorp"),
        make_order(310, day=2, order_id="ORD-102", customer="MediLife"),
        make_order(150, day=5, order_id="ORD-103", customer="HealthPlus"),
        make_order(220, day=6, order_id="ORD-104", customer="BioGen"),
    ]
    return roll, orders
