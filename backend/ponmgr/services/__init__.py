"""Application services wiring models to the device drivers."""
