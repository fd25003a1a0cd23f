"""Authentication: password hashing and session tokens.

Learn: one authentication path: email/password → bcrypt verify →
a signed 24h JWT carrying the public profile. The same token is sent
as a Bearer header to the API and as the ``token`` cookie that the
route guard looks at on page navigations.
"""
