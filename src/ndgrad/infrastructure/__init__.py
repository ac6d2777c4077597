"""
Concrete implementations: the NumPy-backed NdArray, its CPU kernels, the
autograd graph and the differentiable primitives.
"""
