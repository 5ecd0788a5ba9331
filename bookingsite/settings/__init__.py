"""
Módulos de settings: `main` para ejecución normal, `testing` para pytest.
"""
