"""Staff and portal login accounts managed by administrators."""
