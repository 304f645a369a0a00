# salon/crud/__init__.py
