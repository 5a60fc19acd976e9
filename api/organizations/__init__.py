"""
GSoC organizations feature: API client, sync pass, persistence and the HTML page.
"""
