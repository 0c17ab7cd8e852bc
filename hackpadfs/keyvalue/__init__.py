"""A file system built on a key-value store, with its blob, record, store and file types."""