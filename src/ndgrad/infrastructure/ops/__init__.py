"""
NumPy CPU kernels used by the NdArray mixins.
"""
