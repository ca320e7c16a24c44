"""Database models — re-exports all models.

Import from here:  from rfpflow.models import Vendor, RFP, ...
Or from submodules: from rfpflow.models.rfps import RFP
"""

from .base import Base  # noqa: F401

# Vendors
from .vendors import Vendor  # noqa: F401

# RFPs & dispatch records
from .rfps import RFP, RFPVendor, RFP_STATUSES  # noqa: F401

# Proposals & comparison scores
from .proposals import Proposal, ProposalScore  # noqa: F401
