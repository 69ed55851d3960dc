"""
newsdesk — market-aware crypto news aggregation and screening.
"""
