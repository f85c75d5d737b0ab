"""
Inverted Encoding Models
========================

Two ways back from measurement space to the stimulus:

    - ``inverted``    point estimate of channel responses, ``Y @ pinv(W)``
    - ``likelihood``  Gaussian stimulus likelihood evaluated in measurement space
"""
