# telebridge/__init__.py
