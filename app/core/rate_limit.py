from slowapi import Limiter
from slowapi.util import get_remote_address

# Single limiter shared by every router; app.state.limiter points here.
limiter = Limiter(key_func=get_remote_address)
