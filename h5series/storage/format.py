"""h5series .h5 file format constants.

One file covers one period at one sample period:

    @date_time         — period begin, ISO-8601 UTC string attr
    @sample_period     — unit string attr, e.g. "1 s"
    /<catalog>/        — catalog id with "/" replaced by "_", e.g. A_B_C
        @properties    — indented JSON of the catalog property bag (optional)
        /<resource>/   — raw resource id
            @properties
            /dataset_<representation>[(<k=v,...>)]  — float64, length = period / sample period
"""

import math

# Root attributes
DATE_TIME_ATTR = "date_time"
SAMPLE_PERIOD_ATTR = "sample_period"

# Group attributes
PROPERTIES_ATTR = "properties"

# Dataset naming
DATASET_PREFIX = "dataset_"

# File extension
FILE_EXTENSION = ".h5"

# Filter pipeline: byte shuffle, then deflate
SHUFFLE = True
COMPRESSION = "gzip"
COMPRESSION_OPTS = 4  # compression level 1-9, 4 is good speed/ratio balance

# Unwritten elements read back as NaN
FILL_VALUE = math.nan

# Target chunk size, 1 MiB of float64 samples
ELEMENT_SIZE = 8
TARGET_CHUNK_BYTES = 1024 * 1024

# Property bags are serialized as indented JSON
JSON_INDENT = 2
