#!/usr/bin/env python3
"""
Command line Huffman compressor.

How to run:
  anhc notes.txt                 # writes notes.huf
  anhc -p out/ notes.txt         # writes out/notes.huf
  anhc -d notes.huf              # restores notes.txt
  anhc -d -o -k notes.huf        # overwrite, keep the output even if the hash is wrong
  anhc -l notes.huf              # show the header
"""
import argparse
import os
import sys

from container import CorruptHeader, SignatureMismatch, TruncatedHeader, VersionMismatch
from file_compression import (
    IntegrityMismatch,
    TruncatedPayload,
    compress_file,
    decompress_file,
    list_contents,
)
from huffman import EmptyFrequencyTable, HuffmanError

EXIT_OK = 0
EXIT_IO = 1
EXIT_FORMAT = 2
EXIT_INTEGRITY = 3


def existing_dir(path):
    if not os.path.isdir(path):
        raise argparse.ArgumentTypeError(f"{path} is not an existing directory")
    return path


def build_parser():
    parser = argparse.ArgumentParser(prog="anhc", description="Huffman compression algorithm")
    parser.add_argument("filename", help="The file to be compressed/decompressed")
    parser.add_argument("-p", "--path", type=existing_dir, default=None,
                        help="Directory the new file will be written to")
    parser.add_argument("-d", dest="decompress", action="store_true", help="Decompress")
    parser.add_argument("-o", dest="overwrite", action="store_true",
                        help="Overwrite an existing file when decompressing (compressing always overwrites)")
    parser.add_argument("-k", dest="keep", action="store_true",
                        help="Keep the decompressed file when its hash does not match")
    parser.add_argument("-l", "--list", action="store_true", help="List the contents of a .huf file")
    parser.add_argument("-q", "--quiet", action="store_true", help="Do not print progress")
    return parser


def progress_printer(label):
    last = {"percent": -1}

    def report(processed, total):
        percent = round(processed / total * 100) if total else 100
        if percent != last["percent"]:
            print(f"{label}... {percent}%\t\t{processed // 1024}/{total // 1024} KB")
            last["percent"] = percent

    return report


def print_listing(listing):
    print(f"Huffman Compression version: {listing['version']}")
    print(f"Original file name:          {listing['name']}")
    print(f"Original file size:          {listing['original_size'] / 1024:.2f} KB")
    print(f"Compressed file size:        {listing['compressed_size'] / 1024:.2f} KB")
    print(f"Distinct bytes:              {listing['symbols']}")
    print(f"MD5 hash:                    {listing['digest']}")


def run(args):
    if args.list:
        print_listing(list_contents(args.filename))
    elif args.decompress:
        progress = None if args.quiet else progress_printer("decompressing")
        output_path = decompress_file(args.filename, args.path or "", overwrite=args.overwrite,
                                      keep=args.keep, progress=progress)
        print(f"File decompressed successfully: {output_path}")
    else:
        progress = None if args.quiet else progress_printer("compressing")
        output_path = compress_file(args.filename, args.path or "", progress=progress)
        print(f"File compressed successfully: {output_path}")
    return EXIT_OK


def main(argv=None):
    args = build_parser().parse_args(argv)
    try:
        return run(args)
    except FileExistsError as e:
        print(f"File already exists: {e}. Add -o to overwrite.", file=sys.stderr)
        return EXIT_IO
    except OSError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_IO
    except IntegrityMismatch as e:
        print(e, file=sys.stderr)
        print("Keeping bad file." if args.keep else "Bad file was deleted.", file=sys.stderr)
        return EXIT_INTEGRITY
    except (SignatureMismatch, VersionMismatch, TruncatedHeader, CorruptHeader,
            EmptyFrequencyTable, TruncatedPayload) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_FORMAT
    except (HuffmanError, ValueError) as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_IO


if __name__ == "__main__":
    raise SystemExit(main())
