"""askmypdf.app

Application wiring: the component container and the HTTP API.
"""
