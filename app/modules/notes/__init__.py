"""
Módulo de Notas Crédito y Débito

- CreditNote: reduce el cargo de la factura
- DebitNote: incrementa el cargo de la factura

Cada alta o baja re-deriva el estado de la factura afectada.
"""
