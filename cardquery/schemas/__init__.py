"""
Pydantic schemas for API request/response validation and for the card
records and per-request results that flow through the query pipeline.
"""
