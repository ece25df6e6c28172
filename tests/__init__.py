"""
Test Suite for fdops

Test Categories:
    - Unit tests: scalar coefficients, stencils, leaf operators, the
      convolution engine, composite operators, configuration
    - Integration tests: boundary value problems and time-dependent
      operators assembled from the algebra
"""
