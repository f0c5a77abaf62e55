"""CPU core: register file, stack, ALU and opcode decoder."""
