"""
ssl.py holds the certificate utilities needed to check the cluster
certificate authority which is shared between the masters.
"""
from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa, ec


def load_cert(data):
    """
    read a PEM encoded certificate

    Args:
        data (bytes) - the certificate as read from a host

    Return:
        cert (inst) - a certificate instance
    """
    return x509.load_pem_x509_certificate(data, default_backend())


def load_key(data):
    """
    read a PEM encoded, unencrypted private key

    Args:
        data (bytes) - the key as read from a host

    Return:
        private_key (inst) - a private key instance
    """
    return serialization.load_pem_private_key(
        data, password=None, backend=default_backend())


def load_public_key(data):
    """read a PEM encoded public key"""
    return serialization.load_pem_public_key(data, backend=default_backend())


def public_bytes(public_key):
    """DER encoded SubjectPublicKeyInfo of a public key"""
    return public_key.public_bytes(
        serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo)


def keys_match(private_key, public_key):
    """
    check that a private key belongs to a public key
    """
    return public_bytes(private_key.public_key()) == public_bytes(public_key)


def cert_signed_by(cert, private_key):
    """
    check that the private key signed the (self signed) certificate
    """
    public_key = private_key.public_key()
    try:
        if isinstance(public_key, rsa.RSAPublicKey):
            public_key.verify(cert.signature, cert.tbs_certificate_bytes,
                              padding.PKCS1v15(),
                              cert.signature_hash_algorithm)
        elif isinstance(public_key, ec.EllipticCurvePublicKey):
            public_key.verify(cert.signature, cert.tbs_certificate_bytes,
                              ec.ECDSA(cert.signature_hash_algorithm))
        else:
            return keys_match(private_key, cert.public_key())
    except InvalidSignature:
        return False

    return True


def discovery_hash(cert):
    """
    calculate a discovery hash based on the cert's public key
    """
    digest = hashes.Hash(hashes.SHA256(), backend=default_backend())
    digest.update(public_bytes(cert.public_key()))
    return digest.finalize().hex()
