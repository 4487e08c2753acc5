#!/usr/bin/env python

from logging import Logger as PythonLogger
from typing import Type


class ParabootstrapLogger(PythonLogger):
    def __init__(self, name: str):
        super().__init__(name)

    @staticmethod
    def logger_name_for_class(model_class: Type):
        return f"{model_class.__module__}.{model_class.__qualname__}"

    def network(self, log_msg: str, *args, **kwargs):
        """
        Logs raw node traffic (RPC requests, subscription updates) below INFO so it stays out of the console.
        """
        from . import NETWORK

        self.log(NETWORK, log_msg, *args, **kwargs)
