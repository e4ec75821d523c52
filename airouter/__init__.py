"""
airouter - Cost-Aware AI Request Router

Routes text-generation requests between a self-hosted local model server
and a metered remote API, preferring the local one to save cost and
falling back to the other provider when one fails.
"""

__version__ = "1.0.0"
__author__ = "airouter"
