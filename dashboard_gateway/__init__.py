"""
Market Dashboard Gateway.

Backend for the crypto and stock market dashboard: proxies market-data
upstreams, rate limits callers, caches stock data, stores portfolios and
serves the single-page application.
"""
