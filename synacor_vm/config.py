"""
Synacor VM — Machine Geometry and Run-time Defaults
===================================================

Every number the engine depends on lives here so the rest of the package
never hard-codes 32768 in two different meanings.

Address space (one 16-bit word, two readings):
  0     – 32767   literal value / memory index
  32768 – 32775   register r0 – r7
  32776 – 65535   invalid everywhere
"""

# =============================================================================
#  MACHINE GEOMETRY
# =============================================================================
WORD_BITS = 15
WORD_MODULUS = 1 << WORD_BITS      # 32768, all arithmetic is mod this
WORD_MASK = WORD_MODULUS - 1       # 0x7FFF, 15-bit complement mask

MEMORY_SIZE = 32768                # words, addresses 0..32767
NUM_REGISTERS = 8
REGISTER_BASE = 32768              # raw word 32768 == r0
REGISTER_LIMIT = REGISTER_BASE + NUM_REGISTERS - 1   # 32775 == r7

MAX_IMAGE_BYTES = MEMORY_SIZE * 2  # 65536, little-endian word pairs


# =============================================================================
#  RUN-TIME DEFAULTS (overridable per engine / on the command line)
# =============================================================================
DEFAULT_PROMPT = ">>"              # written before each blocking line read
DEBUG_COMMAND_PREFIX = "!"         # only honoured with debug_commands=True
DEFAULT_MAX_STEPS = None           # None = run until halt or fault
TRACE_HISTORY = 1000               # trace lines kept in memory for get_trace()


# =============================================================================
#  LOGGING
# =============================================================================
LOG_NAME = "synacor_vm"
TRACE_LOG_NAME = LOG_NAME + ".trace"
FILE_LOG_FORMAT = (
    "%(asctime)s | %(levelname)-7s | %(name)s | %(funcName)s:%(lineno)d | %(message)s"
)
FILE_LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
