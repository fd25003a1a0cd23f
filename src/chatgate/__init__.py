"""chatgate — authenticated chat web application.

Users register and log in with email + password, receive a signed
session token, and talk to an LLM through the ``/chat`` proxy.
A route guard keeps page navigations behind the session cookie.
"""

__version__ = "0.1.0"
