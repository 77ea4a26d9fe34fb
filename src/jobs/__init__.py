# src/jobs/__init__.py — v1
