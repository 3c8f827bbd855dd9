"""
Shared code for the stock screener services: config, logging, database
client, rate limiter and models
"""
