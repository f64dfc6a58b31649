#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""Verification execution: checks, AI analysis, strategy resolution and the verifier.

Import submodules directly (``verdict.execution.verifier``); this package
stays import-light because capability discovery depends on the prompt module.
"""
