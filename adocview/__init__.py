"""adocview: conversion orchestration and a single-concurrency watch queue for AsciiDoc."""

__version__ = "0.1.0"
