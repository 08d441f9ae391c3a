"""
CNV Segmentation Test Suite

This package contains tests for the cnv_segmentation engine:
- Unit tests for models, parameters, segmenters and post-processing
- Integration tests for engine runs, file adapters and the pipeline
- Edge case tests for empty, excluded and gapped chromosomes

Run tests with:
    pytest tests/                    # All tests
    pytest tests/ -v                 # Verbose output
    pytest tests/ -m unit            # Only unit tests
    pytest tests/ --cov=cnv_segmentation  # With coverage
"""

__version__ = '1.0.0'
