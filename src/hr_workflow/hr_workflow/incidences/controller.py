from __future__ import annotations

from flask import Flask, jsonify

from ..common.http import api_view
from ..container import Container


def register(app: Flask, container: Container) -> None:
    @app.route("/incidence-types", methods=["GET"], endpoint="list_incidence_types")
    @api_view
    def list_incidence_types(actor):
        types = container.incidence_types.list_requestable()
        return jsonify({"success": True, "incidence_types": [t.to_dict() for t in types]})
