"""NiceGUI interface - thin visualization layer over ChatClient.

Renders the conversation state, the sources of the latest answer and
error notifications. All chat logic lives in ``docchat.client``.
"""
