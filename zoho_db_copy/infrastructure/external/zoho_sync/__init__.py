"""
Pipeline de copia one-way: Zoho CRM -> base de datos relacional.

Este paquete está diseñado para ejecutarse como job (cron / task scheduler).

Objetivos de diseño:
- Esquema dirigido por Zoho: la tabla de cada módulo sigue a sus fields.
- Idempotencia: reconciliar sin cambios no ejecuta DDL.
- Incremental: watermark derivado de la última actividad ya copiada.
- Todo o nada: la copia de un módulo corre en una sola transacción.
"""
