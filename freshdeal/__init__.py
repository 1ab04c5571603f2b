"""FreshDeal pricing core.

Dynamic pricing, cart aggregation and order reconciliation for
time-limited offers on perishable goods.
"""

__version__ = "1.0.0"
