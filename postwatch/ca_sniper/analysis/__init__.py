from postwatch.ca_sniper.analysis.address_detector import AddressDetector, classify

__all__ = ["AddressDetector", "classify"]
