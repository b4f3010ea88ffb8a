"""Read and enforce HP business-class BIOS settings through HP WMI"""

__version__ = "1.0.0"
