"""Customer analytics engine: RFM segmentation, CLV projection and revenue
concentration, with period-over-period comparison."""

__version__ = "0.1.0"
