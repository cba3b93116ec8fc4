"""
Pattern detectors: fair value gaps, manipulation, and the detector interface
"""
