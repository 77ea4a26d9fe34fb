# src/providers/__init__.py — v1
