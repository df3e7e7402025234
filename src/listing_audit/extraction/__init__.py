# ABOUTME: Data extraction from listing pages and the capabilities used to reach them
# ABOUTME: Record parsing, page/pagination protocols and the browser-backed implementation

"""
Extraction Layer: Get records out of listing pages

This layer handles:
- Page and pagination capability protocols
- Parsing page snapshots into records
- Driving a real browser through those capabilities

Data Flow: Listing pages → PageSnapshot → Records → Collection engine
"""
