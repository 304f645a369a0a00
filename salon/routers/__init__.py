# salon/routers/__init__.py
