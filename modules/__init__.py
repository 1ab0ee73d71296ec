"""FleetGeo Processing Modules

This package contains the processing modules of the FleetGeo enrichment
framework. Each module implements the ModuleProcessor interface and provides
the business logic for one enrichment task over the tracking-record store.
"""
