# salon/services/__init__.py
