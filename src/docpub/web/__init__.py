"""Web package for the document pub.

This package contains the FastAPI application: HTML pages for browsers
and the ``/api/v1`` JSON endpoints used by sync peers.

To start the web server from the CLI use:
    docpub serve --port 3333
"""
