# src/container/__init__.py — v1
