"""
Concrete matrices, element operators, devices, kernels and operator backends.
"""
