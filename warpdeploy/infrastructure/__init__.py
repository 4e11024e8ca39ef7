"""Infrastructure adapters for Warpdeploy.

Contains process execution and observability helpers. Domain and service
code should depend on the facades exported from these sub-packages.
"""
