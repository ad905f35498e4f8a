"""
Spending aggregation: transactions -> immutable SpendingProfile.
"""
