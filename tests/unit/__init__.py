"""
asemap Unit Tests Package.

Test organization:
- analysis/: statistics, correction, gene annotation, writing and the pipeline
- io/: variant keys and the reference panel factory
- loading/: concurrent count file loading
- results/: the shared variant store
"""
