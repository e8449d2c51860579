"""
Módulo de Pagos

- Pago simple contra una factura (se registra completo, aun si sobrepaga)
- Pago masivo distribuido entre varias facturas, la más antigua primero
- Consulta de facturas abiertas por cliente o finca
"""
