import hashlib

# Width of the digest field in the container header
DIGEST_SIZE = 32


class Md5Digest:
    """
    Streaming MD5 accumulator.
    finalize() returns the hex digest as 32 ASCII bytes, which is what the
    header stores. It does not reset the accumulator.
    """

    def __init__(self):
        self._md5 = hashlib.md5()

    def add(self, data):
        self._md5.update(data)
        return self

    def finalize(self):
        return self._md5.hexdigest().encode("ascii")
