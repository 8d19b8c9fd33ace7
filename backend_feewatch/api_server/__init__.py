"""
API server package: HTTP interface over the claim and risk pipelines.
"""
