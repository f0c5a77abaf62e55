"""Character I/O between the machine and the operator."""
