# AI Core module

"""
AI Core Module - Turns raw document text into structured knowledge.

Key responsibilities:
- Content cleanup and chunking of long documents
- Knowledge extraction through the text generator
- Repair and validation of model responses
- Tag-based classification and pairwise similarity scoring
"""
