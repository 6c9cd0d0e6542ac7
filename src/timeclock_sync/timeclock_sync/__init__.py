"""Time-clock sync package.

This package is organized by feature modules (devices, sync, attendance, metrics, ...)
with a thin Flask controller layer and service/repository layers underneath.
"""
