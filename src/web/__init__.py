"""
Task Manager web frontend.

Server-rendered pages (list, add, edit) that talk to the backend API only
through `src.web.client.TaskApiClient`.
"""
