"""
Stock Screener Service

ETL de Finnhub a PostgreSQL y API de rankings (P/E más bajo, mayores caídas)
"""

__version__ = "1.0.0"
