"""
Módulo de Facturación (Invoices)

Facturas de exportación de flores:

- Tipo sale (venta al cliente), purchase (compra a la finca) o both
- Líneas por caja (QB / EB / HB) con ramos, tallos y precios de compra y venta
- Estado derivado del saldo: paid, overdue (vuelo + plazo vencido) o pending
- Tarea periódica (Celery beat) que re-deriva los estados vencidos

Tablas principales:
- invoices: Facturas
- invoice_line_items: Cajas de la factura
- invoice_bunch_items: Ramos por caja
"""
