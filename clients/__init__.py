"""
Collaborator clients for the thermal detection handler.

This package exposes:
- `base`     : abstract contracts (`Authenticator`, `BlobStore`,
               `RecordStore`, `VisionCompletionService`) and the `Services` bundle
- `supabase` : Supabase auth, storage and PostgREST over HTTP
- `gateway`  : chat-completions AI gateway
- `memory`   : in-memory implementations for tests and local runs
- `registry` : singleton accessor (`get_services`)
"""
