from shellsignal.shell import entrypoint

entrypoint()
