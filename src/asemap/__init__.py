"""
asemap: meta-analysis of allele-specific expression across samples.
"""

__version__ = "0.1.0"
