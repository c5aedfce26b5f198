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

"""Reading batch transfer inputs from JSON and CSV

A JSON batch is an array of objects with the keys of MultisigTxInput.FIELDS.
A CSV batch has one header row using the same names, with the public keys
spread over columns publicKeys/0, publicKeys/1, ...
"""

import base64
import binascii
import csv
import io
import json
import re

import stxmultisig
from stxmultisig.builder import MultisigTxInput
from stxmultisig.c32 import C32Error
from stxmultisig.core.transaction import COMPRESSED_PUBKEY_LENGTH, MEMO_LENGTH, CStacksPrincipal
from stxmultisig.errors import ValidationError

_decimal_re = re.compile(r'^[0-9]+$')


def _read_text(path):
    with open(path, 'r', encoding='utf-8') as fd:
        return fd.read()


def _present(d, key):
    return d.get(key) not in (None, '')


def _is_pubkey_hex(s):
    try:
        return len(binascii.unhexlify(s)) == COMPRESSED_PUBKEY_LENGTH
    except (binascii.Error, ValueError):
        return False


def _check_decimal(d, i, key):
    if not _present(d, key):
        return
    value = d[key]
    if not isinstance(value, str) or not _decimal_re.match(value):
        raise ValidationError(i, key, value, 'is not a decimal integer string')


def _check_string(d, i, key):
    if _present(d, key) and not isinstance(d[key], str):
        raise ValidationError(i, key, d[key])


def validate_tx_input(d, i):
    """Validate one batch record, raising ValidationError naming the field"""
    if not isinstance(d, dict):
        raise ValidationError(i, None, d, "is of type '%s'" % type(d).__name__)

    recipient = d.get('recipient')
    if not isinstance(recipient, str):
        raise ValidationError(i, 'recipient', recipient)
    try:
        CStacksPrincipal.from_string(recipient)
    except (C32Error, ValueError):
        raise ValidationError(i, 'recipient', recipient, 'is not a valid Stacks address')

    # Must contain at least one, can contain both
    _check_decimal(d, i, 'amount')
    _check_decimal(d, i, 'amount_stx')
    if not _present(d, 'amount') and not _present(d, 'amount_stx'):
        raise ValidationError(i, 'amount', None, "and/or 'amount_stx' must be defined")

    public_keys = d.get('publicKeys')
    if not isinstance(public_keys, list) or not public_keys:
        raise ValidationError(i, 'publicKeys', public_keys)
    for key in public_keys:
        if not isinstance(key, str) or not _is_pubkey_hex(key):
            raise ValidationError(i, 'publicKeys', key, 'contains invalid element')

    num_signatures = d.get('numSignatures')
    if (not isinstance(num_signatures, int) or isinstance(num_signatures, bool)
            or num_signatures < 1):
        raise ValidationError(i, 'numSignatures', num_signatures)
    if num_signatures > len(public_keys):
        raise ValidationError(i, 'numSignatures', num_signatures,
                              'exceeds the number of public keys (%d)' % len(public_keys))

    _check_decimal(d, i, 'fee')
    _check_decimal(d, i, 'nonce')
    _check_string(d, i, 'sender')
    _check_string(d, i, 'memo')
    _check_string(d, i, 'network')

    if _present(d, 'memo') and len(d['memo'].encode('utf-8')) > MEMO_LENGTH:
        raise ValidationError(i, 'memo', d['memo'], 'is longer than %d bytes' % MEMO_LENGTH)

    if _present(d, 'network') and stxmultisig.parse_network_name(d['network']) is None:
        raise ValidationError(i, 'network', d['network'],
                              'names none of %s' % ', '.join(stxmultisig.NETWORK_NAMES))


def validate_tx_inputs(data):
    """Validate a list of batch records and return them as MultisigTxInput"""
    if not isinstance(data, list):
        raise ValidationError(None, None, type(data).__name__, 'is not an array')
    for i, d in enumerate(data):
        validate_tx_input(d, i)
    return [MultisigTxInput.from_dict(d) for d in data]


def make_tx_inputs_from_text(text):
    """Transfer inputs from a JSON array of records"""
    return validate_tx_inputs(json.loads(text))


def make_tx_inputs_from_file(path):
    return make_tx_inputs_from_text(_read_text(path))


def _csv_rows(text):
    reader = csv.DictReader(io.StringIO(text), delimiter=',')
    for i, row in enumerate(reader):
        if None in row:
            raise ValidationError(i, None, row[None], 'has more columns than the header')
        yield i, row


def make_tx_inputs_from_csv_text(text):
    """Transfer inputs from CSV with a header row

    Empty cells are dropped. Columns named 'array/index' build lists.
    """
    data = []
    for i, row in _csv_rows(text):
        line = {}
        arrays = {}
        for k, v in row.items():
            if v is None or v == '':
                continue
            if '/' in k:
                parts = k.split('/')
                if len(parts) > 2:
                    raise ValidationError(i, k, v, 'is a multidimensional array, which is not supported')
                arr, index = parts
                try:
                    index = int(index)
                except ValueError:
                    raise ValidationError(i, k, v, 'has a non-integer array index')
                arrays.setdefault(arr, {})[index] = v
            else:
                line[k] = v

        for arr, items in arrays.items():
            line[arr] = [items.get(j) for j in range(max(items) + 1)]

        # Everything is parsed as strings
        if 'numSignatures' in line:
            try:
                line['numSignatures'] = int(line['numSignatures'])
            except ValueError:
                pass

        data.append(line)

    return validate_tx_inputs(data)


def make_tx_inputs_from_csv_file(path):
    return make_tx_inputs_from_csv_text(_read_text(path))


def make_key_path_map_from_csv_text(text):
    """Map of hex public key to derivation path, from CSV with key,path columns"""
    key_paths = {}
    for i, row in _csv_rows(text):
        if not row.get('key') or not row.get('path'):
            raise ValidationError(i, None, row, "is missing 'key' or 'path'")
        key_paths[row['key'].lower()] = row['path']
    return key_paths


def make_key_path_map_from_csv_file(path):
    return make_key_path_map_from_csv_text(_read_text(path))


def encoded_txs_from_text(text):
    """Parse a JSON array of base64-encoded transactions"""
    txs_encoded = json.loads(text)
    if not isinstance(txs_encoded, list):
        raise ValidationError(None, None, type(txs_encoded).__name__,
                              'is not an array of base64-encoded strings')
    for i, tx in enumerate(txs_encoded):
        if not isinstance(tx, str):
            raise ValidationError(i, None, tx,
                                  "is of type '%s', expected a base64-encoded string" %
                                  type(tx).__name__)
    return txs_encoded


def encoded_txs_from_file(path):
    return encoded_txs_from_text(_read_text(path))


def b64_encode(obj):
    """Export a JSON-serializable object as a base64-encoded string"""
    return base64.b64encode(json.dumps(obj).encode('utf-8')).decode('ascii')


def b64_decode(b64):
    return json.loads(base64.b64decode(b64).decode('utf-8'))


__all__ = (
    'validate_tx_input',
    'validate_tx_inputs',
    'make_tx_inputs_from_text',
    'make_tx_inputs_from_file',
    'make_tx_inputs_from_csv_text',
    'make_tx_inputs_from_csv_file',
    'make_key_path_map_from_csv_text',
    'make_key_path_map_from_csv_file',
    'encoded_txs_from_text',
    'encoded_txs_from_file',
    'b64_encode',
    'b64_decode',
)
