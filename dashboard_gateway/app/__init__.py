"""
Gateway application package.

The gateway fronts the dashboard's browser requests, providing:
- Rate limiting: in-process token bucket per client address
- Caching: TTL cache for Finnhub stock data
- Upstream proxying: CoinMarketCap, FreeCurrencyAPI, Marketaux, Finnhub, Gemini
- Portfolio persistence: MongoDB, one document per user

Structure:
- app.main: FastAPI app, middleware and lifecycle wiring.
- app.adapters: HTTP clients for upstreams and the portfolio store.
- app.caching: TTL cache and cache manager.
- app.ratelimit: Token bucket and client identification.
- app.domain: Route table, dispatcher and portfolio normalization.
- app.static_files: SPA static file fallback.
"""
