"""
Módulo de Contactos

Clientes (importadores) y fincas (proveedores) de la exportadora.

Componentes:
- models.py: SQLAlchemy models Customer y Farm
- schemas.py: Pydantic schemas para validación y serialización
- service.py: alta, consulta y validación de referencias
- router.py: Endpoints REST API
"""
