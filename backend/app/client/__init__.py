"""Operator-side distribution workflow.

Builds a cart against an inventory snapshot and submits it to the backend.
The snapshot check here is advisory; the backend re-validates live stock.
"""

from .api_client import PharmacyApiClient
from .cart import CartLine, DistributionCart
from .submitter import DistributionSubmitter

__all__ = ["PharmacyApiClient", "CartLine", "DistributionCart", "DistributionSubmitter"]
