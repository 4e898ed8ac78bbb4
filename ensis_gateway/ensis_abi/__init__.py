"""Ensis ABI helper module"""

from .ensis_abi import ENSIS_ABI as ENSIS_ABI
from .ensis_abi import clear_abi_cache as clear_abi_cache
from .ensis_abi import fetch_ensis_abi as fetch_ensis_abi

__all__ = ["ENSIS_ABI", "clear_abi_cache", "fetch_ensis_abi"]
