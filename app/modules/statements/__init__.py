"""
Módulo de Estados de Cuenta

- Cliente: facturas de venta, saldo pendiente y pago urgente
- Finca: facturas de compra liquidadas a precio de compra
"""
