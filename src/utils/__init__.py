"""
Utility modules for the payments relay
"""
from .config_loader import PaymentsConfig, load_payments_config

__all__ = [
    'PaymentsConfig',
    'load_payments_config',
]
