# Instruction set and decoder
