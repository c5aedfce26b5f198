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

# Decode base64 Stacks transactions and show how far multisig signing has got
# Reads a single transaction from the command line, or a JSON array of them
# with --file ('-' for stdin)

import argparse
import json
import logging
import sys

from bitcoin.core import b2x
from bitcoin.core.serialize import SerializationError

from stxmultisig.authinfo import get_auth_field_info
from stxmultisig.builder import get_params_from_tx
from stxmultisig.errors import NotMultisig
from stxmultisig.core.transaction import tx_decode
from stxmultisig.inputs import encoded_txs_from_file, encoded_txs_from_text

parser = argparse.ArgumentParser(
    description='Decode base64 Stacks transactions')
parser.add_argument('tx', metavar='base64', type=str, nargs='?',
                    help='Base64 encoded transaction')
parser.add_argument('--file', type=str, default=None,
                    help="JSON array of base64 encoded transactions")
parser.add_argument('-v', '--verbose', action="store_true",
                    help="Debug logging")
args = parser.parse_args()

logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

if args.file == '-':
    encoded = encoded_txs_from_text(sys.stdin.read())
elif args.file:
    encoded = encoded_txs_from_file(args.file)
elif args.tx:
    encoded = [args.tx]
else:
    parser.error('give a transaction or --file')

for i, tx_b64 in enumerate(encoded):
    try:
        tx = tx_decode(tx_b64)
    except (SerializationError, ValueError) as e:
        print("Error: transaction {}: {}".format(i, e))
        sys.exit(1)

    params = get_params_from_tx(tx)
    condition = tx.spending_condition
    print('tx', i, params.NAME)
    print('  signer', b2x(condition.signer), 'nonce', condition.nonce, 'fee', condition.fee)
    print('  to', tx.payload.recipient, 'amount', tx.payload.amount, 'memo', repr(tx.payload.memo))
    try:
        info = get_auth_field_info(tx)
    except NotMultisig:
        print('  single-sig')
        continue
    print('  ' + json.dumps(info.to_dict()))
    print('  fully signed' if info.is_fully_signed else '  needs %d more signature(s)' %
          (info.threshold_required - info.signature_count))
