"""
seagrass2obis
Converts Hakai seagrass density and habitat surveys to Darwin Core Event,
Occurrence and extendedMeasurementOrFact tables for OBIS submission
"""

__version__ = "1.0.0"
