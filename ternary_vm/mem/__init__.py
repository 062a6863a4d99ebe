# Addressable store
