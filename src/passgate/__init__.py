"""Passgate — account registration, login and stateless password reset.

Identity is proven with signed bearer tokens instead of server-side
sessions; the password reset flow keeps its state inside those tokens
and an emailed one-time code.
"""

__version__ = "0.1.0"
