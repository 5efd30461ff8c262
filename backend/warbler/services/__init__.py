"""Domain services shared between the REST routers and the realtime gateway."""
