"""Central configuration for edge mask extraction.

All tunable parameters are defined here with descriptive names.
These values are the defaults of EdgeMaskConfig and can be overridden
per run from the command line.
"""

# =============================================================================
# KERNEL DISPATCH
# =============================================================================

# Number of worker threads per kernel pass (None = os.cpu_count())
KERNEL_WORKERS = None

# Thread name prefix for kernel workers (shows up in log records)
KERNEL_THREAD_PREFIX = "kernel"

# =============================================================================
# EDGE RECIPE (percentile black point)
# =============================================================================

# Box-average passes applied after Sobel, before thresholding
DENOISE_COUNT = 10
DENOISE_RADIUS = 6

# The black point is the nonzero value at rank size // PERCENTILE_DIVISOR
# (4 = 25th percentile from the bottom)
PERCENTILE_DIVISOR = 4

# =============================================================================
# REGION RECIPE (histogram mode)
# =============================================================================

# Blur passes before edge detection
PRE_BLUR_COUNT = 1

# Blur passes after edge detection
BLUR_COUNT = 20
BLUR_RADIUS = 3

# Truncated values allowed to vote for the mode (inclusive).
# 0 is background and never votes.
MODE_LOW = 1
MODE_HIGH = 50

# Pixels within this distance of the mode become foreground
CERTAINTY = 5

# Dilation passes closing the region mask
DILATE_COUNT = 8
DILATE_RADIUS = 9

# =============================================================================
# MASK OUTPUT
# =============================================================================

# Dilated values above this snap to 255, the rest to 0
BINARIZE_CUTOFF = 127

MASK_FOREGROUND = 255
MASK_BACKGROUND = 0

# Output file name for the N-th input (1-based)
OUTPUT_NAME_TEMPLATE = "output_{index}.png"
