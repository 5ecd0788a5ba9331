"""
Paquete Infra de Core.

Filtros de logging compartidos. No importar modelos aquí: settings.LOGGING
carga este paquete antes de que las apps estén listas.
"""
