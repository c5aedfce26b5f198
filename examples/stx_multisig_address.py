#!/usr/bin/env python3
# Copyright (C) 2024 The python-stxmultisiglib developers
#
# This file is part of python-stxmultisiglib.
#
# It is subject to the license terms in the LICENSE file found in the top-level
# directory of this distribution.
#
# No part of python-stxmultisiglib, including this file, may be copied, modified,
# propagated, or distributed except according to the terms contained in the
# LICENSE file.

# Stacks multisig address from a list of public keys
# With --match, the keys are checked against a known address and printed in the
# order that reproduces it

import argparse
import logging
import sys

import stxmultisig
from stxmultisig.errors import MultisigError
from stxmultisig.wallet import make_multisig_address, make_multisig_address_raw, match_address

parser = argparse.ArgumentParser(
    description='Derive a Stacks multisig address from public keys')
parser.add_argument('pubkeys', metavar='pubkey', type=str, nargs='+',
                    help='Hex encoded compressed public key')
parser.add_argument('-m', '--required', type=int, default=None,
                    help="Signatures required (default: all keys)")
parser.add_argument('--testnet', action="store_true",
                    help="Use testnet (default: mainnet)")
parser.add_argument('--sort', action="store_true",
                    help="Sort keys by hex before deriving the address")
parser.add_argument('--match', type=str, default="",
                    help="Address the keys should correspond to")
args = parser.parse_args()

logging.basicConfig(level=logging.WARNING)

if args.testnet:
    stxmultisig.SelectParams('testnet')

required = args.required if args.required is not None else len(args.pubkeys)
pubkeys = sorted(args.pubkeys) if args.sort else args.pubkeys

try:
    if args.match:
        for k in match_address(pubkeys, required, args.match):
            print(k)
    else:
        print(make_multisig_address(pubkeys, required))
        print(make_multisig_address_raw(pubkeys, required))
except (MultisigError, ValueError) as e:
    print("Error: {}".format(e))
    sys.exit(1)
