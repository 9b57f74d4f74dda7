"""
Keyword Gap Engine

Compares the ranked-keyword sets of two domains and reports the keywords a
competitor ranks for that you don't (missing) or that you both rank for
(overlap), with opportunity scores and dashboard KPIs.

Modules:
- utils: Settings, domain normalization, logging setup
- collector: DataForSEO client, retry policy, keyword fetcher
- cache: Injected response cache (memory / Redis)
- gap: Data model, classifier, scoring, KPIs, chart view-models
- database: Models, sessions, report store
- services: Report lifecycle orchestration
- reporter: CSV / JSON / HTML exports
- auth: Supabase JWT verification
- api: FastAPI application
"""

__version__ = "0.1.0"
